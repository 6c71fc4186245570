from __future__ import annotations

import argparse
import asyncio
import logging
import os
from pathlib import Path

from erp_migration.cli.loader import build_context, parse_file, persist_results, write_results_json
from erp_migration.db.connect import connect
from erp_migration.db.initialize import db_init
from erp_migration.parsing.registry import PARSE_CONFIG_NAMES

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _lookup_arg(value: str) -> tuple[str, Path]:
    """`NAME=PATH` -> `(NAME, Path(PATH))`."""
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise argparse.ArgumentTypeError(f"expected NAME=PATH, got {value!r}")
    return name, Path(path)


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for parsing legacy exports into ERP record options.

    The `cmd` options are:
    ## parse:
    Parse and post-process a CSV/TSV file with a named configuration.
    - `--input` as the path to the file,
    - `--config` as the parse configuration (`customer`, `salesorder`, `item`),
    - `--output` to write `{record_type: {valid, invalid}}` as JSON,
    - `--lookup NAME=PATH` (repeatable) for lookup tables such as `item=items.csv`,
    - `--value-mapping`, `--human-names` for the run's correction tables,
    - `--persist` to store the results in Postgres.

    One summary line per record type prints on completion.

    ### Example parse usage:
    - `migrate parse --input data/customers.tsv --config customer --output out/customers.json`
    - `migrate parse --input data/sales.csv --config salesorder --lookup item=data/items.csv --persist`

    ## db:
    - `init` (re)initializes the schema,
    - `--sql` points to a SQL file or a directory of them.
    """
    p = argparse.ArgumentParser(prog="migrate")
    p.add_argument(
        "--log-level",
        default=os.getenv("ERP_MIGRATION_LOG_LEVEL", "INFO").upper(),
        choices=LOG_LEVELS,
        help="Logging level (default: $ERP_MIGRATION_LOG_LEVEL or INFO).",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # parse cmd
    parse = sub.add_parser("parse", help="Parse a file into record options (valid and invalid).")
    parse.add_argument("--input", required=True, help="Path to input file (CSV or TSV).")
    parse.add_argument("--config", required=True, choices=PARSE_CONFIG_NAMES)
    parse.add_argument("--output", default=None, help="Write results as JSON to this path.")
    parse.add_argument("--lookup", action="append", type=_lookup_arg, default=[], metavar="NAME=PATH")
    parse.add_argument("--value-mapping", default=None, help="JSON file of raw value overrides.")
    parse.add_argument("--human-names", default=None, help="File of entity ids always treated as people.")
    parse.add_argument("--persist", action="store_true", help="Store results in Postgres.")

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)

    db_init_p = db_sub.add_parser("init", help="Initialize DB schema from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")

    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    if args.cmd == "parse":
        input_path = Path(args.input)
        context = build_context(
            lookups=dict(args.lookup),
            value_mapping_path=Path(args.value_mapping) if args.value_mapping else None,
            human_names_path=Path(args.human_names) if args.human_names else None,
        )
        parsed = asyncio.run(parse_file(input_path, args.config, context))

        if args.output:
            write_results_json(Path(args.output), parsed)

        run_id = None
        if args.persist:
            with connect() as conn:
                run_id = persist_results(conn, parsed)

        for summary in parsed.summaries(run_id):
            print(summary.render_one_line())
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        db_init(sql_path=Path(args.sql))
        print(f"Initialized schema from {args.sql}")
        return 0

    return 2
