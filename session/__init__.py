"""
In-process session cache with debounced persistence.

Sessions are served from memory. Writes are mirrored to an optional SQLite
database and/or Redis after a quiet period, so bursts of updates to one
session produce a single backend write.
"""

from session.models import SessionRecord, now_ms
from session.keys import SessionKeyBuilder
from session.store import SessionBackend
from session.redis_store import RedisSessionBackend
from session.sqlite_store import SQLiteSessionBackend
from session.cache import SessionCache
from session.factory import build_backends, build_session_cache

__all__ = [
    "SessionRecord",
    "now_ms",
    "SessionKeyBuilder",
    "SessionBackend",
    "RedisSessionBackend",
    "SQLiteSessionBackend",
    "SessionCache",
    "build_backends",
    "build_session_cache",
]
