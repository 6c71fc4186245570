from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator, Mapping

from erp_migration.parsing.primitives import clean


_TAB_SUFFIXES = {".tsv", ".tab"}


def delimiter_for(path: Path) -> str:
    """Tab for `.tsv`/`.tab` files, comma otherwise."""
    return "\t" if path.suffix.lower() in _TAB_SUFFIXES else ","


def read_header(path: Path) -> list[str]:
    """Column names from the first line of a delimited file (`[]` for an empty file)."""
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f, delimiter=delimiter_for(path))
        for header in reader:
            return [h.strip() for h in header]
    return []


def stream_delimited_rows(path: Path) -> Iterator[tuple[int, Mapping[str, Any]]]:
    """
    Yields `(source_row, dict)` for CSV/TSV data rows, delimiter picked by file extension.

    `source_row` is 1-based for the first real data row encountered, header is not counted.
    Header names are stripped; cells are passed through raw.
    """
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter_for(path))
        if reader.fieldnames is not None:
            reader.fieldnames = [h.strip() for h in reader.fieldnames]
        for i, row in enumerate(reader, start=1):
            # long rows collect extras under the None key
            yield i, {k: v for k, v in row.items() if k is not None}


def load_lookup_table(path: Path, *, key_column: str = "name", value_column: str = "internalid") -> dict[str, Any]:
    """
    Read a two-column lookup (e.g. item SKU -> internal id) from a delimited file.

    Integer-looking values become `int`. Rows with a blank key or value are skipped;
    the first occurrence of a key wins.
    """
    out: dict[str, Any] = {}
    for source_row, row in stream_delimited_rows(path):
        if key_column not in row or value_column not in row:
            raise ValueError(f"{path}: lookup needs columns {key_column!r} and {value_column!r} (row {source_row})")
        key = clean(row.get(key_column))
        value = clean(row.get(value_column))
        if not key or not value or key in out:
            continue
        out[key] = int(value) if value.lstrip("-").isdigit() else value
    return out
