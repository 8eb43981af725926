from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from errors.exceptions import backend_not_connected
from session.store import Blob, SessionBackend

logger = logging.getLogger(__name__)


_SESSIONS_DDL = """
CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_UPSERT_SQL = (
    "INSERT INTO sessions (session_id, value) VALUES (?, ?)"
    " ON CONFLICT(session_id) DO UPDATE SET value = excluded.value"
)

_DELETE_SQL = "DELETE FROM sessions WHERE session_id = ?"


def _ensure_pragmas(connection: sqlite3.Connection) -> None:
    connection.execute("PRAGMA journal_mode = WAL;")


def resolve_db_path(db_path: str) -> Path:
    """Absolute database path with ``~`` expanded, relative to the cwd."""
    path = Path(db_path).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


class SQLiteSessionBackend(SessionBackend):
    """SQLite-backed mirror of session blobs, one row per session id."""

    name = "sqlite"

    def __init__(self, db_path: str) -> None:
        self._db_path = str(resolve_db_path(db_path))
        self._write_lock = asyncio.Lock()
        self._writes: set[asyncio.Task] = set()
        self._connected = False

    @property
    def db_path(self) -> str:
        return self._db_path

    async def connect(self) -> None:
        """Create the sessions table if needed."""
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        def _init() -> None:
            with sqlite3.connect(self._db_path) as connection:
                _ensure_pragmas(connection)
                connection.execute(_SESSIONS_DDL)
                connection.commit()

        await asyncio.to_thread(_init)
        self._connected = True
        logger.info("Session database initialised at %s", self._db_path)

    async def disconnect(self) -> None:
        if self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)
        self._connected = False

    async def load_all(self) -> list[Optional[Blob]]:
        self._require_connected()
        rows = await asyncio.to_thread(self._fetchall, "SELECT value FROM sessions")
        return [row["value"] for row in rows]

    async def persist(self, session_id: str, blob: str, ttl_ms: int) -> None:
        # Expiry is not stored; restore loads the row and the sweeper evicts it.
        self._require_connected()
        await asyncio.shield(self._submit(_UPSERT_SQL, (session_id, blob)))

    async def delete(self, session_id: str) -> None:
        self._require_connected()
        await asyncio.shield(self._submit(_DELETE_SQL, (session_id,)))

    async def health_check(self) -> bool:
        if not self._connected:
            return False
        try:
            row = await asyncio.to_thread(self._fetchone, "SELECT 1 AS ok")
        except sqlite3.Error as e:
            logger.debug("SQLite health check failed: %s", e)
            return False
        return bool(row and row["ok"] == 1)

    def _require_connected(self) -> None:
        if not self._connected:
            raise backend_not_connected(self.name, {"db_path": self._db_path})

    def _submit(self, query: str, params: tuple) -> asyncio.Task:
        """
        Run a write statement in a task that owns the write lock.

        The caller awaits the task through a shield, so a cancelled or timed
        out caller leaves the lock held until the statement has landed.
        Writes therefore reach the file in the order they were submitted.
        """
        task = asyncio.get_running_loop().create_task(self._locked_execute(query, params))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        return task

    async def _locked_execute(self, query: str, params: tuple) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._execute, query, params)

    def _execute(self, query: str, params: tuple = ()) -> None:
        with sqlite3.connect(self._db_path) as connection:
            _ensure_pragmas(connection)
            connection.execute(query, params)
            connection.commit()

    def _fetchall(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        with sqlite3.connect(self._db_path) as connection:
            connection.row_factory = sqlite3.Row
            # Raw bytes; a row that is not valid UTF-8 must not fail the query.
            connection.text_factory = bytes
            _ensure_pragmas(connection)
            cursor = connection.execute(query, params)
            return cursor.fetchall()

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with sqlite3.connect(self._db_path) as connection:
            connection.row_factory = sqlite3.Row
            _ensure_pragmas(connection)
            cursor = connection.execute(query, params)
            return cursor.fetchone()
