from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from pathlib import Path
from typing import Callable, Optional

from .errors import StorageFault
from .models import SessionConfig, SessionRow

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SQLiteSessionStore:
    """SQLite-backed table of ``(id, data, stamp)`` session rows.

    Rows older than ``config.ttl_seconds`` are treated as absent by
    :meth:`load_live` even before :meth:`sweep_expired` removes them.
    """

    def __init__(self, db_path: str, config: SessionConfig, *, clock: Clock = time.time) -> None:
        path = Path(db_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.suffix != ".db":
            path = path.with_suffix(".db")
        self._db_path = str(path)
        self._config = config
        self._table = config.table
        self._clock = clock
        self._write_lock = asyncio.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def config(self) -> SessionConfig:
        return self._config

    def now(self) -> int:
        return int(self._clock())

    def stale_before(self) -> int:
        """Stamp below which a row is no longer live."""
        return self.now() - self._config.ttl_seconds

    async def init(self) -> None:
        """Create the session table if it does not exist.

        Unlike the per-row operations this raises ``StorageFault``: a store
        without its table cannot serve any session.
        """
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        ddl = (
            f"CREATE TABLE IF NOT EXISTS `{self._table}` "
            f"(id varchar({self._config.id_length + 1}) UNIQUE, data blob, stamp bigint)"
        )
        try:
            await asyncio.to_thread(self._execute, ddl)
        except sqlite3.Error as exc:
            logger.exception("Failed to create session table %s", self._table)
            raise StorageFault(f"Failed to create session table {self._table}: {exc}") from exc
        logger.info("Session table %s initialised at %s", self._table, self._db_path)

    async def close(self) -> None:  # pragma: no cover - compatibility placeholder
        return None

    async def load_live(self, session_id: str) -> Optional[SessionRow]:
        """Return the row for ``session_id`` if it is still live, else None."""
        try:
            row = await asyncio.to_thread(
                self._fetchone,
                f"SELECT id, data, stamp FROM `{self._table}` WHERE id = ? AND stamp >= ?",
                (session_id, self.stale_before()),
            )
        except sqlite3.Error as exc:
            logger.warning("Session lookup failed, treating as absent: %s", exc)
            return None
        if row is None:
            return None
        data = row["data"]
        return SessionRow(id=row["id"], data=bytes(data) if data is not None else b"", stamp=int(row["stamp"]))

    async def upsert(self, session_id: str, data: bytes, stamp: int) -> bool:
        """Insert or replace the row for ``session_id``.

        Returns False when the backend refused the write; the failure is logged
        and not raised.
        """
        try:
            async with self._write_lock:
                await asyncio.to_thread(
                    self._execute,
                    f"REPLACE INTO `{self._table}` (id, data, stamp) VALUES (?, ?, ?)",
                    (session_id, sqlite3.Binary(data), stamp),
                )
        except sqlite3.Error:
            logger.exception("Failed to store session %s…", session_id[:8])
            return False
        return True

    async def delete(self, session_id: str) -> bool:
        try:
            async with self._write_lock:
                removed = await asyncio.to_thread(
                    self._execute,
                    f"DELETE FROM `{self._table}` WHERE id = ?",
                    (session_id,),
                )
        except sqlite3.Error:
            logger.exception("Failed to delete session %s…", session_id[:8])
            return False
        return removed > 0

    async def sweep_expired(self) -> int:
        """Delete every row older than the TTL window and return how many went."""
        threshold = self.stale_before()
        try:
            async with self._write_lock:
                removed = await asyncio.to_thread(
                    self._execute,
                    f"DELETE FROM `{self._table}` WHERE stamp < ?",
                    (threshold,),
                )
        except sqlite3.Error:
            logger.exception("Session sweep on %s failed", self._table)
            return 0
        if removed:
            logger.info("Swept %d expired session(s) from %s", removed, self._table)
        return removed

    async def count(self) -> int:
        """Number of rows currently stored, live or not."""
        try:
            row = await asyncio.to_thread(self._fetchone, f"SELECT COUNT(*) AS total FROM `{self._table}`")
        except sqlite3.Error as exc:
            logger.warning("Session count failed, reporting 0: %s", exc)
            return 0
        return int(row["total"]) if row else 0

    def _execute(self, query: str, params: tuple = ()) -> int:
        with sqlite3.connect(self._db_path) as connection:
            cursor = connection.execute(query, params)
            connection.commit()
            return cursor.rowcount

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with sqlite3.connect(self._db_path) as connection:
            connection.row_factory = sqlite3.Row
            cursor = connection.execute(query, params)
            return cursor.fetchone()
