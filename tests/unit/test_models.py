"""
Unit tests for the session record model and its blob serialization.
"""

import json

import pytest
from hypothesis import given, strategies as st

from errors.codes import ErrorCode
from errors.exceptions import CacheException
from session.models import SessionRecord, now_ms


extra_values = st.recursive(
    st.none() | st.booleans() | st.integers(min_value=-2**63, max_value=2**63 - 1) | st.text(),
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(max_size=5), children, max_size=3),
    max_leaves=8,
)


class TestSessionRecord:
    """Tests for SessionRecord construction and helpers."""

    def test_accepts_alias_and_field_name(self):
        by_alias = SessionRecord(id="a", expiresAt=10)
        by_name = SessionRecord(id="a", expires_at=10)

        assert by_alias == by_name
        assert by_alias.expires_at == 10

    def test_extra_fields_are_kept(self):
        record = SessionRecord(id="a", expiresAt=10, user="u1", roles=["admin"])

        assert record.extra_fields == {"user": "u1", "roles": ["admin"]}

    def test_remaining_ttl_and_expiry(self):
        record = SessionRecord(id="a", expiresAt=1000)

        assert record.remaining_ttl_ms(now=400) == 600
        assert not record.is_expired(now=999)
        assert record.is_expired(now=1000)

    def test_now_ms_is_epoch_milliseconds(self):
        assert now_ms() > 1_600_000_000_000


class TestBlobSerialization:
    """Tests for to_blob / from_blob."""

    def test_blob_uses_expires_at_key(self):
        blob = SessionRecord(id="a", expiresAt=42, user="u1").to_blob()

        assert json.loads(blob) == {"id": "a", "expiresAt": 42, "user": "u1"}

    def test_reads_blob_written_by_other_processes(self):
        record = SessionRecord.from_blob('{"id": "s1", "expiresAt": 1700000000000, "lang": "en"}')

        assert record.id == "s1"
        assert record.expires_at == 1700000000000
        assert record.extra_fields == {"lang": "en"}

    @given(
        session_id=st.text(min_size=1),
        expires_at=st.integers(min_value=0, max_value=2**53),
        extras=st.dictionaries(
            st.from_regex(r"[a-z][a-z0-9]{0,7}", fullmatch=True).filter(lambda k: k != "id"),
            extra_values,
            max_size=4,
        ),
    )
    def test_round_trip_preserves_id_expiry_and_fields(self, session_id, expires_at, extras):
        record = SessionRecord(id=session_id, expiresAt=expires_at, **extras)

        restored = SessionRecord.from_blob(record.to_blob())

        assert restored == record
        assert restored.id == session_id
        assert restored.expires_at == expires_at
        assert restored.extra_fields == extras

    @pytest.mark.parametrize("blob", [
        None,
        "",
        "not json",
        "[1, 2]",
        '{"expiresAt": 1}',
        '{"id": "a"}',
        '{"id": "", "expiresAt": 1}',
        '{"id": "a", "expiresAt": "soon"}',
        b"\xff{",
    ])
    def test_malformed_blobs_raise_decode_error(self, blob):
        with pytest.raises(CacheException) as exc_info:
            SessionRecord.from_blob(blob)

        assert exc_info.value.error_code == ErrorCode.RECORD_DECODE_ERROR
        assert exc_info.value.category == "decode"
