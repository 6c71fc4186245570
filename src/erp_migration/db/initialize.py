from __future__ import annotations

import logging
from pathlib import Path

import psycopg

from erp_migration.db.connect import connect

logger = logging.getLogger(__name__)


def run_sql_file(conn: psycopg.Connection, sql_path: Path) -> None:
    """Execute a `.sql` file statement by statement, naming the statement that fails."""
    text = sql_path.read_text(encoding="utf-8")
    statements = [s.strip() for s in text.split(";") if s.strip()]

    with conn.cursor() as cur:
        for i, stmt in enumerate(statements, 1):
            try:
                cur.execute(stmt)
            except Exception as e:
                raise RuntimeError(
                    f"DB init failed in {sql_path} on statement #{i}\n"
                    f"Postgres raised with: {e}\n"
                    f"--- statement ---\n{stmt}\n--- end ---\n"
                ) from e
    conn.commit()
    logger.info("ran %d statement(s) from %s", len(statements), sql_path)


def sql_files(sql_path: Path) -> list[Path]:
    """A directory's `*.sql` files in ascending name order, or the single file given."""
    if sql_path.is_dir():
        return sorted(sql_path.glob("*.sql"))
    return [sql_path]


def db_init(*, sql_path: Path) -> None:
    """(Re-)initialize the schema from `sql_path`, a `.sql` file or a directory of them."""
    with connect() as conn:
        for path in sql_files(sql_path):
            run_sql_file(conn, path)
