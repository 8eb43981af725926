"""
In-memory record store: the authoritative view of live sessions.

All methods are synchronous and never suspend, so on a single event loop
mutations (put, pop, retain_unexpired) are mutually exclusive.
"""

from __future__ import annotations

from typing import Iterator, Optional

from session.models import SessionRecord


class RecordStore:
    """Mapping of session id to SessionRecord."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._records.get(session_id)

    def put(self, record: SessionRecord) -> None:
        """Insert or fully replace the record under record.id."""
        self._records[record.id] = record

    def pop(self, session_id: str) -> Optional[SessionRecord]:
        return self._records.pop(session_id, None)

    def retain_unexpired(self, now: int) -> int:
        """
        Keep only records with expires_at > now.

        Returns:
            Number of records removed.
        """
        before = len(self._records)
        self._records = {
            session_id: record
            for session_id, record in self._records.items()
            if record.expires_at > now
        }
        return before - len(self._records)

    def ids(self) -> list[str]:
        return list(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SessionRecord]:
        return iter(list(self._records.values()))
