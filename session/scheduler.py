"""
Debounced persistence scheduler.

Coalesces bursts of upserts for the same session id into a single backend
write. Each id owns at most one pending timer; a new upsert cancels and
replaces it. When the timer fires the current record is re-read from the
record store, so only the latest value is ever persisted.

Timers are event-loop callbacks (``loop.call_later``). Scheduling and
cancelling run synchronously on the loop, so the cancel-and-replace of a
single id's timer cannot interleave with another schedule for that id.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from errors.exceptions import CacheException, backend_timeout, backend_write_failed
from session.memory import RecordStore
from session.models import now_ms
from session.store import SessionBackend
from telemetry.service import session_id_var

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEBOUNCE_MS = 1000


async def call_backend(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    details: dict[str, Any]
) -> T:
    """
    Await a backend call, bounded by timeout seconds when one is set.

    Raises:
        CacheException: BACKEND_TIMEOUT if the call exceeds the timeout.
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise backend_timeout(
            f"Backend call timed out after {timeout} seconds",
            details=details,
        ) from e


class PersistenceScheduler:
    """
    Per-id delayed-write coordinator.

    Attributes:
        delay_ms: Quiet period after the last upsert before a flush.
        backend_timeout: Optional bound, in seconds, on each backend write.
    """

    def __init__(
        self,
        store: RecordStore,
        backends: Sequence[SessionBackend],
        delay_ms: int = DEFAULT_DEBOUNCE_MS,
        clock: Callable[[], int] = now_ms,
        backend_timeout: Optional[float] = None,
        telemetry: Optional[Any] = None,
    ):
        self._store = store
        self._backends = list(backends)
        self.delay_ms = delay_ms
        self._clock = clock
        self.backend_timeout = backend_timeout
        self._telemetry = telemetry
        self._pending: dict[str, asyncio.TimerHandle] = {}
        self._inflight: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._backends)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def schedule(self, session_id: str) -> None:
        """
        (Re)start the quiet period for session_id.

        No-op when no backend is enabled. Must be called from the event
        loop thread.
        """
        if not self._backends:
            return
        loop = asyncio.get_running_loop()
        self.cancel(session_id)
        self._pending[session_id] = loop.call_later(
            self.delay_ms / 1000, self._fire, session_id
        )

    def cancel(self, session_id: str) -> bool:
        """Drop the pending write for session_id, if any."""
        handle = self._pending.pop(session_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self, session_id: str) -> None:
        # Clear our own handle first so a later schedule() is never cancelled by us.
        self._pending.pop(session_id, None)
        self._spawn(session_id)

    def _spawn(self, session_id: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.flush(session_id))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def flush(self, session_id: str) -> bool:
        """
        Write the current value of session_id to every backend.

        Returns:
            True if every backend accepted the write, False if the write was
            skipped (record removed or expired) or any backend failed.
        """
        record = self._store.get(session_id)
        if record is None:
            logger.debug("Skipping persist of removed session %s", session_id)
            return False

        remaining_ttl = record.expires_at - self._clock()
        if remaining_ttl <= 0:
            # Backends reap it by their own TTL, or already have.
            logger.debug("Skipping persist of expired session %s", session_id)
            return False

        blob = record.to_blob()
        token = session_id_var.set(session_id)
        try:
            ok = True
            for backend in self._backends:
                ok = await self._write(backend, session_id, blob, remaining_ttl) and ok
            return ok
        finally:
            session_id_var.reset(token)

    async def _write(
        self,
        backend: SessionBackend,
        session_id: str,
        blob: str,
        remaining_ttl: int
    ) -> bool:
        details = {
            "backend": backend.name,
            "session_id": session_id,
            "remaining_ttl_ms": remaining_ttl,
        }
        try:
            await call_backend(
                backend.persist(session_id, blob, remaining_ttl),
                self.backend_timeout,
                details,
            )
        except Exception as e:
            failure = e if isinstance(e, CacheException) else backend_write_failed(
                details={"error": str(e)}
            )
            logger.error(
                "Could not persist session",
                exc_info=failure is not e,
                extra={"extra_data": {**details, "error": failure.to_dict()}},
            )
            self._metric("sessions.persist_failed", backend.name)
            return False

        self._metric("sessions.persisted", backend.name)
        return True

    def _metric(self, name: str, backend: str) -> None:
        if self._telemetry is not None:
            self._telemetry.record_metric(name, 1, tags={"backend": backend})

    async def drain(self, flush: bool = True) -> None:
        """
        Settle all pending and in-flight writes.

        Pending timers are cancelled; with flush=True their writes are
        started immediately instead of being dropped. Then every in-flight
        write is awaited.
        """
        pending = list(self._pending)
        for session_id in pending:
            self.cancel(session_id)
        if flush:
            for session_id in pending:
                self._spawn(session_id)
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
