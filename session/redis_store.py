"""
Redis-based session backend implementation.

This module provides a Redis-backed implementation of the SessionBackend
interface. Sessions are stored as JSON blobs under namespaced keys and
carry a millisecond expiry so Redis reaps them even if this process dies
before deleting them.
"""

import logging
from typing import Any, Optional, Union

from errors.exceptions import backend_not_connected
from session.keys import SessionKeyBuilder
from session.store import Blob, SessionBackend

logger = logging.getLogger(__name__)

# Cursor value that both starts and ends a SCAN iteration
SCAN_SENTINEL = "0"


class RedisSessionBackend(SessionBackend):
    """
    Redis-backed session backend.

    Keys are built by a SessionKeyBuilder, e.g. "app:session:<id>".
    Restores enumerate keys with cursor-based SCAN and fetch them with a
    single MGET.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379")
        keys: Key builder for the configured namespace
        client: Redis async client instance (initialized via connect())
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        namespace: str,
        client: Optional[Any] = None,
        scan_count: Optional[int] = None
    ):
        """
        Initialize the Redis session backend.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            namespace: Prefix for every key written by this backend.
            client: Optional pre-built async client. When given, connect()
                keeps it instead of creating one from redis_url.
            scan_count: Optional COUNT hint passed to SCAN.
        """
        self.redis_url = redis_url
        self.keys = SessionKeyBuilder(namespace)
        self.client = client
        self.scan_count = scan_count

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        This method must be called before using any other methods.
        It initializes the async Redis client from the configured URL.
        Responses are left as bytes so one undecodable value cannot fail
        a whole MGET; the record decoder rejects it on its own.
        """
        if self.client is not None:
            return
        import redis.asyncio as redis
        self.client = redis.from_url(self.redis_url, decode_responses=False)

    async def disconnect(self) -> None:
        """
        Close the Redis connection.

        Should be called during application shutdown to cleanly
        release resources.
        """
        if self.client:
            await self.client.aclose()
            self.client = None

    def _require_client(self) -> Any:
        if not self.client:
            raise backend_not_connected(self.name)
        return self.client

    async def scan_keys(self) -> list[Union[str, bytes]]:
        """
        Enumerate every session key in the namespace.

        Iterates SCAN until the cursor returns to "0". SCAN may return a
        key more than once, so results are de-duplicated in first-seen order.
        """
        client = self._require_client()
        pattern = self.keys.match_pattern()

        found: dict[Union[str, bytes], None] = {}
        cursor: Any = SCAN_SENTINEL
        while True:
            cursor, batch = await client.scan(
                cursor=cursor, match=pattern, count=self.scan_count
            )
            for key in batch:
                found[key] = None
            if str(cursor) == SCAN_SENTINEL:
                break
        return list(found)

    async def load_all(self) -> list[Optional[Blob]]:
        """
        Load every session blob in the namespace.

        Returns:
            Raw blobs in scan order. Keys that expired between SCAN and
            MGET come back as None.
        """
        client = self._require_client()
        keys = await self.scan_keys()
        if not keys:
            return []
        return list(await client.mget(keys))

    async def persist(self, session_id: str, blob: str, ttl_ms: int) -> None:
        """
        Store a session blob with a millisecond expiry (SET ... PX ttl_ms).

        Args:
            session_id: Unique identifier for the session.
            blob: Serialized session record.
            ttl_ms: Remaining time-to-live in milliseconds, must be positive.
        """
        client = self._require_client()
        await client.set(self.keys.key(session_id), blob, px=ttl_ms)

    async def delete(self, session_id: str) -> None:
        """
        Delete session data by session ID.

        This operation is idempotent - deleting a non-existent
        session does not raise an error.
        """
        client = self._require_client()
        await client.delete(self.keys.key(session_id))

    async def health_check(self) -> bool:
        """
        Check connectivity and health of the Redis store.

        Returns:
            True if Redis is healthy and accessible, False otherwise.

        Note:
            This method does not raise exceptions - connectivity issues
            are caught and result in a False return value.
        """
        if not self.client:
            return False

        try:
            result = await self.client.ping()
            return result is True
        except Exception as e:
            logger.debug("Redis ping failed: %s", e)
            return False
