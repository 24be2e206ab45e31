"""SQLite run-history index with WAL mode.

The audit JSONL streams are the source of truth. This table only indexes
finished runs so the CLI and API can list them without replaying every stream.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any


class Database:
    """SQLite storage layer for run history."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = data_dir or Path.home() / ".conductor"
        self.db_path = self.data_dir / "data" / "conductor.db"

    def _ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / "data").mkdir(exist_ok=True)

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with WAL mode."""
        self._ensure_dirs()
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_tables(self) -> None:
        """Create all tables if they don't exist."""
        with self.connect() as conn:
            conn.executescript(_SCHEMA)

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Execute a query and return results."""
        with self.connect() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def record_run(self, run: dict[str, Any]) -> None:
        """Insert or update one run row."""
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO runs (
                    task_id, body, category, routed_to, spec_id,
                    execution_status, verdict, status, audit_path,
                    started_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(task_id) DO UPDATE SET
                    body = excluded.body,
                    category = excluded.category,
                    routed_to = excluded.routed_to,
                    spec_id = excluded.spec_id,
                    audit_path = excluded.audit_path,
                    started_at = excluded.started_at,
                    status = excluded.status,
                    verdict = excluded.verdict,
                    execution_status = excluded.execution_status,
                    completed_at = excluded.completed_at
                """,
                (
                    run["task_id"],
                    run["body"][:200],
                    run.get("category"),
                    run.get("routed_to"),
                    run.get("spec_id"),
                    run.get("execution_status"),
                    run.get("verdict"),
                    run["status"],
                    run["audit_path"],
                    run["started_at"],
                    run.get("completed_at"),
                ),
            )

    def recent_runs(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        """Most recent runs first."""
        rows = self.execute(
            "SELECT * FROM runs ORDER BY started_at DESC LIMIT ? OFFSET ?", (limit, offset)
        )
        return [dict(row) for row in rows]


_SCHEMA = """
CREATE TABLE IF NOT EXISTS runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id TEXT UNIQUE NOT NULL,
    body TEXT NOT NULL,
    category TEXT,
    routed_to TEXT,
    spec_id TEXT,
    execution_status TEXT,
    verdict TEXT,
    status TEXT NOT NULL,
    audit_path TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT
);
"""
