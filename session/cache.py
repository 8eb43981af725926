"""
Session cache: in-memory reads with debounced mirroring to backends.

SessionCache owns one RecordStore, one PersistenceScheduler and one
ExpirationSweeper. Reads and in-memory writes are synchronous; backend
I/O happens in tasks that never block the caller of upsert().
"""

import logging
from typing import Any, Callable, Optional, Sequence

from errors.exceptions import CacheException, backend_delete_failed
from session.memory import RecordStore
from session.models import SessionRecord, now_ms
from session.restore import restore_records
from session.scheduler import DEFAULT_DEBOUNCE_MS, PersistenceScheduler, call_backend
from session.store import SessionBackend
from session.sweeper import DEFAULT_SWEEP_INTERVAL_MS, ExpirationSweeper

logger = logging.getLogger(__name__)


class SessionCache:
    """
    In-process session cache.

    Backends are passed explicitly; an empty list gives a memory-only
    cache. Restore order follows the list order, last backend wins.

    Usage:
        cache = SessionCache([SQLiteSessionBackend(path), RedisSessionBackend(url, "app")])
        await cache.start()

        cache.upsert(SessionRecord(id="a", expiresAt=now_ms() + 60000, user="u1"))
        record = cache.find_by_id("a")

        await cache.remove("a")
        await cache.aclose()
    """

    def __init__(
        self,
        backends: Sequence[SessionBackend] = (),
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        backend_timeout: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
        telemetry: Optional[Any] = None,
    ):
        self.backends: list[SessionBackend] = list(backends)
        self.backend_timeout = backend_timeout
        self._telemetry = telemetry
        self._store = RecordStore()
        self._scheduler = PersistenceScheduler(
            self._store,
            self.backends,
            delay_ms=debounce_ms,
            clock=clock,
            backend_timeout=backend_timeout,
            telemetry=telemetry,
        )
        self._sweeper = ExpirationSweeper(
            self._store,
            interval_ms=sweep_interval_ms,
            clock=clock,
            telemetry=telemetry,
        )

    @property
    def scheduler(self) -> PersistenceScheduler:
        return self._scheduler

    @property
    def sweeper(self) -> ExpirationSweeper:
        return self._sweeper

    @property
    def pending_count(self) -> int:
        return self._scheduler.pending_count

    def __len__(self) -> int:
        return len(self._store)

    def find_by_id(self, session_id: str) -> Optional[SessionRecord]:
        return self._store.get(session_id)

    def upsert(self, record: SessionRecord) -> None:
        """
        Store record in memory and schedule a debounced backend write.

        The in-memory write is immediate. With any backend enabled this
        must be called from a running event loop.
        """
        self._store.put(record)
        self._scheduler.schedule(record.id)

    async def remove(self, session_id: str) -> None:
        """
        Remove a session from memory, then delete it from every backend.

        The memory removal happens before the first suspension point.
        Backend delete failures are logged and not raised.
        """
        self._store.pop(session_id)
        self._scheduler.cancel(session_id)

        for backend in self.backends:
            details = {"backend": backend.name, "session_id": session_id}
            try:
                await call_backend(
                    backend.delete(session_id), self.backend_timeout, details
                )
            except Exception as e:
                failure = e if isinstance(e, CacheException) else backend_delete_failed(
                    details={"error": str(e)}
                )
                logger.error(
                    "Could not delete session",
                    exc_info=failure is not e,
                    extra={"extra_data": {**details, "error": failure.to_dict()}},
                )

    def sweep(self) -> int:
        """Run one expiration pass now. Returns the number evicted."""
        return self._sweeper.sweep()

    async def restore(self) -> int:
        """Load every enabled backend into memory. Returns records loaded."""
        return await restore_records(self._store, self.backends, self._telemetry)

    async def start(self) -> None:
        """Connect backends, restore, and start the sweeper."""
        for backend in self.backends:
            await backend.connect()
        await self.restore()
        self._sweeper.start()
        logger.info(
            "Session cache started",
            extra={"extra_data": {
                "backends": [backend.name for backend in self.backends],
                "sessions": len(self._store),
            }},
        )

    async def aclose(self, flush: bool = True) -> None:
        """
        Stop the sweeper, settle pending writes and disconnect backends.

        Args:
            flush: Persist pending debounced writes now instead of dropping them.
        """
        await self._sweeper.stop()
        await self._scheduler.drain(flush=flush)
        for backend in self.backends:
            try:
                await backend.disconnect()
            except Exception:
                logger.exception("Error disconnecting %s backend", backend.name)
