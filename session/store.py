"""
Backend abstraction for durable session mirrors.

This module defines the abstract interface the session cache uses to mirror
in-memory records to slower durable stores (a relational database or a
key/value store). Backends are mirrors for crash recovery and multi-process
sharing; the in-memory record store remains the source of truth.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

# Stored payload as returned by a backend. Adapters may hand back raw bytes
# so undecodable entries are rejected one at a time by the record decoder.
Blob = Union[str, bytes]


class SessionBackend(ABC):
    """
    Abstract base class for session backend adapters.

    Backends store opaque serialized blobs keyed by session id and never
    interpret them. Decoding and error recovery for individual entries is
    done by the cache.

    All I/O methods are async to support non-blocking access to external
    storage systems.
    """

    name: str = "backend"

    async def connect(self) -> None:
        """
        Prepare the backend for use.

        Called once before any other method. The default does nothing.
        """

    async def disconnect(self) -> None:
        """Release resources held by the backend. The default does nothing."""

    @abstractmethod
    async def load_all(self) -> list[Optional[Blob]]:
        """
        Load every stored session blob.

        Returns:
            List of blobs, as str or undecoded bytes. Entries may be None
            where the backend reports a missing value (e.g. a key that
            expired between scan and fetch).

        Raises:
            CacheException: If the backend is not connected.
        """
        pass

    @abstractmethod
    async def persist(self, session_id: str, blob: str, ttl_ms: int) -> None:
        """
        Insert or replace a session blob.

        This operation must be idempotent.

        Args:
            session_id: Unique identifier for the session.
            blob: Serialized session record.
            ttl_ms: Remaining time-to-live in milliseconds. Backends with
                native expiry should reap the entry after this long.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """
        Delete a session by id.

        This operation should be idempotent - deleting a non-existent
        session should not raise an error.

        Args:
            session_id: Unique identifier for the session to delete.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check connectivity and health of the backend.

        Returns:
            True if the backend is healthy and accessible, False otherwise.

        Note:
            This method should not raise exceptions - connectivity issues
            should be caught and result in a False return value.
        """
        pass
