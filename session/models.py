"""
Session record model and its storage serialization.

A record is identified by ``id`` and expires at ``expires_at`` (epoch
milliseconds). Every other field is application data the cache carries
verbatim. The storage blob is a JSON object with the expiry under the
``expiresAt`` key so blobs written by other processes stay readable.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from errors.exceptions import record_decode_error


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class SessionRecord(BaseModel):
    """
    A cached session.

    Attributes:
        id: Opaque unique identifier, the join key across memory and backends.
        expires_at: Absolute expiry in epoch milliseconds.

    Any additional keyword arguments are kept as extra fields and
    serialized alongside ``id`` and ``expiresAt``.
    """

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    expires_at: int = Field(..., alias="expiresAt")

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Application fields, excluding id and expiry."""
        return dict(self.model_extra or {})

    def remaining_ttl_ms(self, now: Optional[int] = None) -> int:
        """Milliseconds until expiry; zero or negative once expired."""
        return self.expires_at - (now_ms() if now is None else now)

    def is_expired(self, now: Optional[int] = None) -> bool:
        return self.remaining_ttl_ms(now) <= 0

    def to_blob(self) -> str:
        """Serialize to the JSON blob stored by every backend."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_blob(cls, blob: Optional[str | bytes]) -> SessionRecord:
        """
        Deserialize a stored blob.

        Raises:
            CacheException: RECORD_DECODE_ERROR if the blob is missing,
                not JSON, not an object, or lacks a valid id/expiresAt.
        """
        if blob is None:
            raise record_decode_error("Stored session blob is empty")
        try:
            return cls.model_validate_json(blob)
        except ValidationError as e:
            raise record_decode_error(
                "Stored session blob is not a valid session record",
                details={"errors": e.error_count()},
            ) from e
