"""Background task that periodically removes expired session rows."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .manager import SessionManager

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, manager: SessionManager, interval_seconds: int) -> None:
        self.interval_seconds = interval_seconds
        self._manager = manager
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_run_at: Optional[datetime] = None
        self._last_removed = 0
        self._total_removed = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        if self.interval_seconds <= 0:
            logger.info("Session sweeper disabled (interval %s)", self.interval_seconds)
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Session sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Session sweeper stopped.")

    async def run_once(self) -> int:
        removed = await self._manager.sweep_expired()
        self._last_run_at = datetime.now()
        self._last_removed = removed
        self._total_removed += removed
        return removed

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_removed": self._last_removed,
            "total_removed": self._total_removed,
        }

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as exc:  # noqa: BLE001 - keep sweeping after a bad tick
                logger.error("Session sweep tick failed: %s", exc)
