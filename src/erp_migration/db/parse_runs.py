from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from uuid import UUID

from psycopg import Connection


RunStatus = Literal["running", "succeeded", "failed"]


@dataclass(frozen=True)
class ParseRun:
    """One persisted parse run, the ledger row."""
    run_id: UUID
    input_path: str
    config_name: str        # registry name of the parse configuration
    status: RunStatus


def insert_parse_run(conn: Connection, *, input_path: Path, config_name: str) -> UUID:
    """
    Create a `parse_runs` row, returns `run_id`.

    The caller commits immediately so the ledger persists even if later steps error.
    """
    row = conn.execute(
        """
        INSERT INTO parse_runs (input_path, config_name, status)
        VALUES (%s, %s, 'running')
        RETURNING run_id
        """,
        (str(input_path), config_name),
    ).fetchone()
    if row is None:
        raise RuntimeError("INSERT INTO parse_runs returned no run_id")
    return row[0]


def update_parse_run_status(conn: Connection, *, run_id: UUID, status: RunStatus) -> None:
    conn.execute(
        "UPDATE parse_runs SET status = %s WHERE run_id = %s",
        (status, run_id),
    )


def get_parse_run(conn: Connection, *, run_id: UUID) -> ParseRun | None:
    row = conn.execute(
        "SELECT run_id, input_path, config_name, status FROM parse_runs WHERE run_id = %s",
        (run_id,),
    ).fetchone()
    if row is None:
        return None
    return ParseRun(run_id=row[0], input_path=row[1], config_name=row[2], status=row[3])
