from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from uuid import UUID

from psycopg import Connection, sql
from psycopg.types.json import Jsonb

from erp_migration.post_process.types import InvalidRecord


INVALID_RECORDS_TABLE = "invalid_records"
INVALID_RECORDS_COLUMNS = ("run_id", "record_type", "source_rows", "payload", "reason_code", "reason_detail")

# cols that should expect jsonb conversion
_JSONB_COLS = {"payload"}


@dataclass(frozen=True)
class InvalidRecordInsert:
    """`invalid_records` row for one record rejected by post-processing."""
    record_type: str
    source_rows: tuple[int, ...]
    payload: Mapping[str, Any]
    reason_code: str
    reason_detail: str

    @classmethod
    def from_invalid(cls, invalid: InvalidRecord) -> "InvalidRecordInsert":
        record = invalid.record
        return cls(
            record_type=record.record_type,
            source_rows=tuple(record.meta.row_indices()) if record.meta is not None else (),
            payload=record.to_mapping(),
            reason_code=invalid.reason_code.value,
            reason_detail=invalid.reason_detail,
        )


def _adapt(col: str, value: Any) -> Any:
    """Adapt python values to DB types (e.g., `jsonb`)."""
    if col in _JSONB_COLS and value is not None:
        return Jsonb(value)
    return value


def insert_invalid_records(conn: Connection, *, run_id: UUID, rejects: Sequence[InvalidRecordInsert]) -> int:
    """
    Insert `rejects` into `invalid_records`. Returns the number of rows written.

    Table/column identifiers are fixed constants; values are parameterized.
    """
    query = sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals})").format(
        tbl=sql.Identifier(INVALID_RECORDS_TABLE),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in INVALID_RECORDS_COLUMNS),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in INVALID_RECORDS_COLUMNS),
    )

    params: list[tuple[Any, ...]] = []
    for r in rejects:
        params.append(
            (
                run_id,
                r.record_type,
                list(r.source_rows),
                _adapt("payload", dict(r.payload)),
                r.reason_code,
                r.reason_detail,
            )
        )

    if params:
        with conn.cursor() as cur:
            cur.executemany(query, params)
    return len(params)
