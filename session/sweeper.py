"""
Periodic eviction of expired sessions from memory.

Each tick is a batch compaction of the whole record store rather than a
timer per record; expiry precision is bounded by the sweep interval.
Backends are never touched here.
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

from session.memory import RecordStore
from session.models import now_ms

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_MS = 60000


class ExpirationSweeper:
    """Background task that calls sweep() every interval_ms."""

    def __init__(
        self,
        store: RecordStore,
        interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], int] = now_ms,
        telemetry: Optional[Any] = None,
    ):
        self._store = store
        self.interval_ms = interval_ms
        self._clock = clock
        self._telemetry = telemetry
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> int:
        """
        Evict every record with expires_at <= now.

        Returns:
            Number of records evicted.
        """
        expired = self._store.retain_unexpired(self._clock())
        if expired > 0:
            logger.info(
                "Cleaned up expired sessions",
                extra={"extra_data": {"count": expired, "remaining": len(self._store)}},
            )
            if self._telemetry is not None:
                self._telemetry.record_metric("sessions.expired", expired)
        return expired

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            self.sweep()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
