"""SQLite-backed crawl cursor.

Records which batches (brands, in grouped mode) have been fully written to an
output file so an interrupted run can resume instead of starting over.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator

from partscrape.config import STATE_DB_PATH

__all__ = [
    "get_connection",
    "init_state_db",
    "mark_batch_complete",
    "get_completed_batches",
    "clear_state",
]


def _key(output_path: str) -> str:
    return os.path.abspath(output_path)


@contextmanager
def get_connection(db_path: str = STATE_DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for state database connections."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_state_db(db_path: str = STATE_DB_PATH) -> None:
    """Initialize the cursor schema."""
    with get_connection(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS crawl_state (
                output_path TEXT NOT NULL,
                batch_key TEXT NOT NULL,
                rows_written INTEGER NOT NULL DEFAULT 0,
                completed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (output_path, batch_key)
            )
        """)
        conn.commit()


def mark_batch_complete(
    db_path: str,
    output_path: str,
    batch_key: str,
    rows_written: int,
) -> None:
    """Record that ``batch_key`` has been fully persisted to ``output_path``."""
    init_state_db(db_path)
    with get_connection(db_path) as conn:
        conn.execute(
            """
            INSERT INTO crawl_state (output_path, batch_key, rows_written, completed_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(output_path, batch_key) DO UPDATE SET
                rows_written = excluded.rows_written,
                completed_at = CURRENT_TIMESTAMP
            """,
            (_key(output_path), batch_key, rows_written),
        )
        conn.commit()


def get_completed_batches(db_path: str, output_path: str) -> Dict[str, int]:
    """Return ``{batch_key: rows_written}`` for completed batches of an output."""
    if not os.path.exists(db_path):
        return {}
    init_state_db(db_path)
    with get_connection(db_path) as conn:
        cursor = conn.execute(
            "SELECT batch_key, rows_written FROM crawl_state WHERE output_path = ?",
            (_key(output_path),),
        )
        return {row["batch_key"]: row["rows_written"] for row in cursor.fetchall()}


def clear_state(db_path: str, output_path: str) -> None:
    """Forget all completed batches of an output."""
    if not os.path.exists(db_path):
        return
    init_state_db(db_path)
    with get_connection(db_path) as conn:
        conn.execute("DELETE FROM crawl_state WHERE output_path = ?", (_key(output_path),))
        conn.commit()
