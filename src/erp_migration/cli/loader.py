from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from uuid import UUID

from psycopg import Connection

from erp_migration.db.parse_runs import insert_parse_run, update_parse_run_status
from erp_migration.db.reject_writers import InvalidRecordInsert, insert_invalid_records
from erp_migration.db.staging_writers import StagedRecordInsert, insert_staged_records
from erp_migration.ingest.driver import ParseRun, parse_record_csv
from erp_migration.ingest.readers import load_lookup_table
from erp_migration.ingest.summary import ParseSummary
from erp_migration.parsing.adapter import value_mapping_from_json
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.registry import ParseConfig, get_parse_config
from erp_migration.post_process.processor import process_parse_results
from erp_migration.post_process.types import ValidatedParseResults

logger = logging.getLogger(__name__)


BATCH_SIZE = 500        # config: increase or decrease.


@dataclass(frozen=True)
class ParsedFile:
    """A parsed and post-processed input file."""
    config: ParseConfig
    input_path: Path
    run: ParseRun
    results: ValidatedParseResults

    def summaries(self, run_id: UUID | None = None) -> list[ParseSummary]:
        return [
            ParseSummary(
                record_type=record_type,
                input_path=str(self.input_path),
                rows=self.run.rows,
                parsed=len(self.run.results.get(record_type, ())),
                valid=len(res.valid),
                invalid=len(res.invalid),
                run_id=run_id,
            )
            for record_type, res in self.results.items()
        ]

    def to_mapping(self) -> dict[str, Any]:
        """`{record_type: {valid: [...], invalid: [...]}}`, JSON ready."""
        return {
            record_type: {
                "valid": [r.to_mapping() for r in res.valid],
                "invalid": [r.to_mapping() for r in res.invalid],
            }
            for record_type, res in self.results.items()
        }


def read_human_names(path: Path) -> frozenset[str]:
    """One entity id per line; blank lines and `#` comments are ignored."""
    names = set()
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            names.add(line)
    return frozenset(names)


def build_context(
    *,
    lookups: Mapping[str, Path] | None = None,
    value_mapping_path: Path | None = None,
    human_names_path: Path | None = None,
) -> ParseContext:
    """Load the run's correction tables and lookup files into a fresh `ParseContext`."""
    context = ParseContext()
    if value_mapping_path is not None:
        context.value_mapping = value_mapping_from_json(json.loads(value_mapping_path.read_text(encoding="utf-8")))
    if human_names_path is not None:
        context.human_names = read_human_names(human_names_path)
    for name, path in (lookups or {}).items():
        context.lookups[name] = load_lookup_table(path)
        logger.info("lookup %r: %d entries from %s", name, len(context.lookups[name]), path)
    return context


async def parse_file(input_path: Path, config_name: str, context: ParseContext | None = None) -> ParsedFile:
    """
    Parse one delimited file with the named configuration, then post-process the results.

    Raises `ValueError` for an unknown configuration and `MissingColumnsError` for a header
    lacking configured columns. Invalid data never raises; it lands in `invalid`.
    """
    config = get_parse_config(config_name)
    context = context or ParseContext()
    run = await parse_record_csv(input_path, config.parse_options, context=context)
    results = await process_parse_results(run.results, config.process_options, context)
    return ParsedFile(config=config, input_path=input_path, run=run, results=results)


def write_results_json(path: Path, parsed: ParsedFile) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(parsed.to_mapping(), indent=2), encoding="utf-8")


def persist_results(conn: Connection, parsed: ParsedFile) -> UUID:
    """
    Persist a parsed file:
      - create a `parse_runs` row (committed immediately),
      - valid records -> `staged_records`,
      - invalid records -> `invalid_records`,
      - mark the run `succeeded`.

    On any error the inserts are rolled back, the run is marked `failed` in its own
    transaction, and the error is re-raised.
    """
    ## -- create run ledger, committed immediately
    run_id = insert_parse_run(conn, input_path=parsed.input_path, config_name=parsed.config.name)
    conn.commit()

    staged = rejected = 0
    staged_batch: list[StagedRecordInsert] = []
    reject_batch: list[InvalidRecordInsert] = []

    try:
        for res in parsed.results.values():
            for i, record in enumerate(res.valid):
                staged_batch.append(StagedRecordInsert.from_record(record, record_index=i))
                if len(staged_batch) >= BATCH_SIZE:
                    staged += insert_staged_records(conn, run_id=run_id, records=staged_batch)
                    staged_batch.clear()
            for invalid in res.invalid:
                reject_batch.append(InvalidRecordInsert.from_invalid(invalid))
                if len(reject_batch) >= BATCH_SIZE:
                    rejected += insert_invalid_records(conn, run_id=run_id, rejects=reject_batch)
                    reject_batch.clear()

        ## -- flush the remainder
        staged += insert_staged_records(conn, run_id=run_id, records=staged_batch)
        rejected += insert_invalid_records(conn, run_id=run_id, rejects=reject_batch)

        update_parse_run_status(conn, run_id=run_id, status="succeeded")
        conn.commit()
        logger.info("run %s persisted: staged=%d invalid=%d", run_id, staged, rejected)
        return run_id

    except Exception:
        # revert everything except the run ledger
        conn.rollback()
        update_parse_run_status(conn, run_id=run_id, status="failed")
        conn.commit()
        raise
