from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from erp_migration.ingest.readers import read_header, stream_delimited_rows
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.interpreter import build_record_options
from erp_migration.parsing.primitives import clean, equivalent_alphanumeric
from erp_migration.parsing.schema import RecordParseOptions, check_columns, validate_parse_options
from erp_migration.parsing.types import (
    LINE_ID_KEY,
    LINE_ID_PROP_KEY,
    LINE_KEY,
    LINE_METADATA_KEYS,
    RecordMeta,
    RecordOptions,
    SourceType,
    SublistLine,
    SubrecordValue,
)

logger = logging.getLogger(__name__)

# record type -> parse options for that record type
ParseDictionary = Mapping[str, RecordParseOptions]
# record type -> parsed records, in first-seen key order
ParseResults = dict[str, list[RecordOptions]]


@dataclass(slots=True)
class ParseRun:
    """What one pass over a source produced, plus the counts for its summary."""
    results: ParseResults = field(default_factory=dict)
    rows: int = 0
    skipped: dict[str, int] = field(default_factory=dict)    # rows without a key value
    failed: dict[str, int] = field(default_factory=dict)     # rows the interpreter could not build
    pruned: dict[str, int] = field(default_factory=dict)


## -- sublist line merging

def _values_equivalent(a: Any, b: Any) -> bool:
    if isinstance(a, SubrecordValue) or isinstance(b, SubrecordValue):
        return (
            isinstance(a, SubrecordValue)
            and isinstance(b, SubrecordValue)
            and a.to_mapping() == b.to_mapping()
        )
    if a == b:
        return True
    if isinstance(a, str) and isinstance(b, str):
        return equivalent_alphanumeric(a, b)
    return False


def is_duplicate_sublist_line(existing_lines: Iterable[SublistLine], new_line: SublistLine) -> bool:
    """
    True when `new_line` restates a line already present.

    Lines are compared by their computed line id when both carry one, else by the value
    of their `lineIdProp` field, else field by field (line metadata ignored).
    """
    for line in existing_lines:
        if LINE_ID_KEY in line and LINE_ID_KEY in new_line:
            if line[LINE_ID_KEY] == new_line[LINE_ID_KEY]:
                return True
            continue

        prop = new_line.get(LINE_ID_PROP_KEY)
        if prop and line.get(LINE_ID_PROP_KEY) == prop and isinstance(new_line.get(prop), str) and isinstance(line.get(prop), str):
            if equivalent_alphanumeric(line[prop], new_line[prop]):
                return True
            continue

        keys = [k for k in new_line if k not in LINE_METADATA_KEYS]
        if keys and all(_values_equivalent(line.get(k), new_line[k]) for k in keys):
            return True
    return False


def merge_record(target: RecordOptions, incoming: RecordOptions) -> None:
    """
    Fold a later row's record into the one already built for the same key.

    Body fields already set are kept; new sublist lines are appended (renumbered) unless
    they duplicate an existing line.
    """
    for field_id, value in incoming.fields.items():
        target.fields.setdefault(field_id, value)
    for sublist_id, lines in incoming.sublists.items():
        existing = target.sublists.setdefault(sublist_id, [])
        for line in lines:
            if is_duplicate_sublist_line(existing, line):
                continue
            line[LINE_KEY] = len(existing)
            existing.append(line)


## -- driver

async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _apply_prune(record_type: str, options: RecordParseOptions, records: list[RecordOptions], run: ParseRun) -> list[RecordOptions]:
    if options.prune_func is None:
        return records
    kept: list[RecordOptions] = []
    for record in records:
        try:
            result = await _maybe_await(options.prune_func(record, *options.prune_args))
        except Exception:
            logger.error("%s: prune %s() raised, record dropped", record_type, getattr(options.prune_func, "__name__", options.prune_func), exc_info=True)
            result = None
        if result is None:
            run.pruned[record_type] = run.pruned.get(record_type, 0) + 1
            continue
        kept.append(result)
    return kept


async def parse_records(
    rows: Iterable[tuple[int, Mapping[str, Any]]],
    parse_dictionary: ParseDictionary,
    *,
    context: ParseContext | None = None,
    source_label: str = "<rows>",
    source_type: SourceType = "rows",
    header: Iterable[str] | None = None,
) -> ParseRun:
    """
    Build records for every record type in `parse_dictionary` from `(source_row, row)` pairs.

    - Configurations are validated up front; with a `header`, missing columns raise before any row.
    - Rows sharing a cleaned key-column value become one record per record type.
    - A row that cannot be built for one record type is logged and does not affect other
      record types or later rows.
    - Each configuration's `prune_func` runs once per record after the last row.

    Errors raised by `rows` itself propagate.
    """
    context = context or ParseContext()
    if header is not None:
        check_columns(header, parse_dictionary)
    else:
        for record_type, options in parse_dictionary.items():
            validate_parse_options(record_type, options)

    run = ParseRun()
    grouped: dict[str, dict[str, RecordOptions]] = {rt: {} for rt in parse_dictionary}

    for source_row, row in rows:
        run.rows += 1
        for record_type, options in parse_dictionary.items():
            key = clean(row.get(options.key_column))
            if not key:
                logger.warning("%s: row %s has no %r value, skipped", record_type, source_row, options.key_column)
                run.skipped[record_type] = run.skipped.get(record_type, 0) + 1
                continue
            try:
                record = await build_record_options(row, record_type, options, context)
            except Exception:
                logger.error("%s: row %s could not be parsed", record_type, source_row, exc_info=True)
                run.failed[record_type] = run.failed.get(record_type, 0) + 1
                continue

            by_key = grouped[record_type]
            target = by_key.get(key)
            if target is None:
                by_key[key] = target = record
            else:
                merge_record(target, record)
            if target.meta is None:
                target.meta = RecordMeta(source_type=source_type)
            target.meta.add_row(source_label, source_row)

    for record_type, options in parse_dictionary.items():
        records = await _apply_prune(record_type, options, list(grouped[record_type].values()), run)
        run.results[record_type] = records
        logger.info(
            "%s: rows=%d records=%d skipped=%d failed=%d pruned=%d (%s)",
            record_type, run.rows, len(records), run.skipped.get(record_type, 0),
            run.failed.get(record_type, 0), run.pruned.get(record_type, 0), source_label,
        )
    return run


async def parse_record_csv(
    path: Path,
    parse_dictionary: ParseDictionary,
    *,
    context: ParseContext | None = None,
) -> ParseRun:
    """`parse_records` over a CSV/TSV file; the header is checked before the first row is read."""
    header = read_header(path)
    return await parse_records(
        stream_delimited_rows(path),
        parse_dictionary,
        context=context,
        source_label=str(path),
        source_type="file",
        header=header,
    )
