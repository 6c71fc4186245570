from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from uuid import UUID

from psycopg import Connection, sql
from psycopg.types.json import Jsonb

from erp_migration.parsing.types import RecordOptions


STAGED_RECORDS_TABLE = "staged_records"
STAGED_RECORDS_COLUMNS = ("run_id", "record_type", "record_index", "source_rows", "payload")


@dataclass(frozen=True)
class StagedRecordInsert:
    """`staged_records` row for one valid record."""
    record_type: str
    record_index: int
    source_rows: tuple[int, ...]
    payload: Mapping[str, Any]

    @classmethod
    def from_record(cls, record: RecordOptions, *, record_index: int) -> "StagedRecordInsert":
        source_rows = tuple(record.meta.row_indices()) if record.meta is not None else ()
        return cls(
            record_type=record.record_type,
            record_index=record_index,
            source_rows=source_rows,
            payload=record.to_mapping(),
        )


def _insert_query(table: str, cols: Sequence[str]) -> sql.Composed:
    # identifiers are fixed module constants, values are parameterized
    return sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals})").format(
        tbl=sql.Identifier(table),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in cols),
    )


def insert_staged_records(conn: Connection, *, run_id: UUID, records: Sequence[StagedRecordInsert]) -> int:
    """Insert valid records into `staged_records`. Returns the number of rows written."""
    params: list[tuple[Any, ...]] = [
        (run_id, r.record_type, r.record_index, list(r.source_rows), Jsonb(dict(r.payload)))
        for r in records
    ]
    if params:
        with conn.cursor() as cur:
            cur.executemany(_insert_query(STAGED_RECORDS_TABLE, STAGED_RECORDS_COLUMNS), params)
    return len(params)
