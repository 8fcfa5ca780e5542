"""Shared SQLite connection for the wiki store."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

# Milliseconds a writer waits on a locked database before giving up.
BUSY_TIMEOUT_MS = 5000


class Database:
    """One SQLite connection shared by request handlers and background jobs.

    Rows come back as ``sqlite3.Row``. Single-statement writes go through
    :meth:`write`, which commits immediately; multi-statement work uses
    :meth:`transaction`.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # Background analysis tasks run on other threads than the request loop.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executescript(self, sql: str) -> sqlite3.Cursor:
        return self._conn.executescript(sql)

    def fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        """Run a query and return its first row, or None."""
        return self._conn.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        return self._conn.execute(sql, params).fetchall()

    def write(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Run one INSERT or UPDATE and commit it.

        The statement is rolled back if it fails, so a failed write never
        leaves the shared connection inside an open transaction.
        """
        with self.transaction():
            return self._conn.execute(sql, params)

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Commit everything executed inside the block, or roll it all back."""
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
