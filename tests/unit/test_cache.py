"""
Unit tests for the SessionCache facade.

These tests cover the public surface (find_by_id, upsert, remove, restore,
sweep) and the start/close lifecycle, using recording backend doubles.
"""

import asyncio
import logging

import pytest

from session.cache import SessionCache
from session.models import SessionRecord

DEBOUNCE_MS = 50
SETTLE = 0.2


def make_cache(backends, clock, **kwargs):
    return SessionCache(backends, debounce_ms=DEBOUNCE_MS, clock=clock, **kwargs)


class TestReadsAndWrites:
    """Tests for synchronous memory semantics."""

    @pytest.mark.asyncio
    async def test_upsert_then_find_returns_exact_record(self, backend, clock):
        cache = make_cache([backend], clock)
        record = SessionRecord(id="a", expiresAt=clock.now + 5000, user="u1")

        cache.upsert(record)

        assert cache.find_by_id("a") is record
        await cache.aclose(flush=False)

    def test_memory_only_cache_needs_no_event_loop(self, clock):
        cache = SessionCache(clock=clock)
        record = SessionRecord(id="a", expiresAt=clock.now + 5000)

        cache.upsert(record)

        assert cache.find_by_id("a") is record
        assert cache.pending_count == 0
        assert len(cache) == 1

    def test_find_missing_returns_none(self, clock):
        assert SessionCache(clock=clock).find_by_id("missing") is None


class TestRemove:
    """Tests for remove()."""

    @pytest.mark.asyncio
    async def test_remove_deletes_from_memory_and_backends(self, make_backend, clock):
        first, second = make_backend("sqlite"), make_backend("redis")
        cache = make_cache([first, second], clock)
        cache.upsert(SessionRecord(id="a", expiresAt=clock.now + 5000))

        await cache.remove("a")

        assert cache.find_by_id("a") is None
        assert first.deleted == ["a"]
        assert second.deleted == ["a"]

    @pytest.mark.asyncio
    async def test_remove_before_quiet_period_prevents_write(self, backend, clock):
        cache = make_cache([backend], clock)
        cache.upsert(SessionRecord(id="a", expiresAt=clock.now + 5000))

        await cache.remove("a")
        await asyncio.sleep(SETTLE)

        assert backend.persisted == []
        assert cache.pending_count == 0

    @pytest.mark.asyncio
    async def test_remove_memory_is_immediate_even_while_delete_pending(self, make_backend, clock):
        started = asyncio.Event()
        release = asyncio.Event()

        class SlowDelete(make_backend):
            async def delete(self, session_id):
                started.set()
                await release.wait()
                await super().delete(session_id)

        cache = make_cache([SlowDelete()], clock)
        cache.upsert(SessionRecord(id="a", expiresAt=clock.now + 5000))

        task = asyncio.create_task(cache.remove("a"))
        await started.wait()
        assert cache.find_by_id("a") is None

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_delete_failure_is_logged_not_raised(self, make_backend, clock, caplog):
        broken = make_backend("sqlite", fail_delete=True)
        healthy = make_backend("redis")
        cache = make_cache([broken, healthy], clock)

        with caplog.at_level(logging.ERROR, logger="session.cache"):
            await cache.remove("a")

        assert healthy.deleted == ["a"]
        failure = next(r for r in caplog.records if r.getMessage() == "Could not delete session")
        assert failure.extra_data["backend"] == "sqlite"

    @pytest.mark.asyncio
    async def test_delete_is_attempted_for_unknown_id(self, backend, clock):
        cache = make_cache([backend], clock)

        await cache.remove("never-cached")

        assert backend.deleted == ["never-cached"]


class TestLifecycle:
    """Tests for start() and aclose()."""

    @pytest.mark.asyncio
    async def test_start_connects_restores_and_runs_sweeper(self, make_backend, clock):
        backend = make_backend(blobs=[SessionRecord(id="a", expiresAt=clock.now + 5000).to_blob()])
        cache = make_cache([backend], clock, sweep_interval_ms=10000)

        await cache.start()

        assert backend.connected
        assert cache.find_by_id("a") is not None
        assert cache.sweeper.running

        await cache.aclose()
        assert not backend.connected
        assert not cache.sweeper.running

    @pytest.mark.asyncio
    async def test_aclose_flushes_pending_writes(self, backend, clock):
        cache = SessionCache([backend], debounce_ms=60000, clock=clock)
        cache.upsert(SessionRecord(id="a", expiresAt=clock.now + 5000))

        await cache.aclose()

        assert len(backend.persisted) == 1

    @pytest.mark.asyncio
    async def test_restore_returns_loaded_count(self, make_backend, clock):
        cache = make_cache(
            [make_backend(blobs=[SessionRecord(id="a", expiresAt=1).to_blob(), "junk"])],
            clock,
        )

        assert await cache.restore() == 1
        assert cache.find_by_id("a") is not None


class TestScenario:
    """End-to-end behaviour of one session through its lifetime."""

    @pytest.mark.asyncio
    async def test_write_persist_expire(self, backend, clock):
        cache = make_cache([backend], clock)
        cache.upsert(SessionRecord(id="a", expiresAt=clock.now + 5000))

        assert cache.find_by_id("a") is not None

        clock.advance(DEBOUNCE_MS)
        await asyncio.sleep(SETTLE)

        writes = backend.writes_for("a")
        assert len(writes) == 1
        assert writes[0][2] == 5000 - DEBOUNCE_MS

        clock.advance(5000)
        assert cache.sweep() == 1
        assert cache.find_by_id("a") is None
