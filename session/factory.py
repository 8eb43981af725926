from __future__ import annotations

import logging
from typing import Any, Optional

from config.settings import Settings
from session.cache import SessionCache
from session.redis_store import RedisSessionBackend
from session.sqlite_store import SQLiteSessionBackend
from session.store import SessionBackend
from telemetry.service import get_telemetry_service

logger = logging.getLogger(__name__)


def build_backends(settings: Settings) -> list[SessionBackend]:
    """Enabled backends in restore order: relational first, then key/value."""
    backends: list[SessionBackend] = []
    if settings.use_session_db:
        backends.append(SQLiteSessionBackend(settings.session_db_path))
    if settings.use_redis:
        backends.append(RedisSessionBackend(settings.redis_url, settings.redis_namespace))
    return backends


def build_session_cache(
    settings: Settings,
    telemetry: Optional[Any] = None,
) -> SessionCache:
    """
    Create a session cache using configuration. Call start() before use.

    Metrics go to telemetry, or to the global telemetry service when one
    has been initialized.
    """
    if telemetry is None:
        telemetry = get_telemetry_service()
    cache = SessionCache(
        build_backends(settings),
        debounce_ms=settings.persist_debounce_ms,
        sweep_interval_ms=settings.sweep_interval_ms,
        backend_timeout=settings.backend_timeout_seconds,
        telemetry=telemetry,
    )
    logger.info("Built session cache with backends %s", settings.enabled_backends or "none")
    return cache
