"""
Startup restore of session records from durable backends.

Backends are loaded in the order given and each record is inserted under
its own id, so a later backend overwrites an earlier one for the same id
(last-loaded wins). The factory orders backends relational first, then
key/value, which makes the key/value copy authoritative on conflict.

Expired records are inserted as-is; the sweeper evicts them on its next
tick.
"""

import logging
from typing import Any, Optional, Sequence

from errors.exceptions import CacheException, backend_load_failed
from session.memory import RecordStore
from session.models import SessionRecord
from session.store import Blob, SessionBackend

logger = logging.getLogger(__name__)


def decode_blobs(blobs: Sequence[Optional[Blob]], backend_name: str) -> list[SessionRecord]:
    """
    Decode blobs, skipping missing and malformed entries individually.
    """
    records: list[SessionRecord] = []
    skipped = 0
    for blob in blobs:
        if blob is None:
            continue
        try:
            records.append(SessionRecord.from_blob(blob))
        except CacheException as e:
            skipped += 1
            logger.warning(
                "Skipping malformed session entry",
                extra={"extra_data": {"backend": backend_name, "error": e.to_dict()}},
            )
    if skipped:
        logger.warning(
            "Skipped %d malformed session entries from %s", skipped, backend_name
        )
    return records


async def restore_records(
    store: RecordStore,
    backends: Sequence[SessionBackend],
    telemetry: Optional[Any] = None,
) -> int:
    """
    Populate store from every backend.

    A backend whose bulk load fails is logged and skipped; the remaining
    backends still load.

    Returns:
        Number of records inserted across all backends (an id loaded from
        two backends counts twice).
    """
    total = 0
    for backend in backends:
        try:
            blobs = await backend.load_all()
        except Exception as e:
            failure = e if isinstance(e, CacheException) else backend_load_failed(
                details={"error": str(e)}
            )
            logger.error(
                "Could not restore sessions",
                exc_info=failure is not e,
                extra={"extra_data": {"backend": backend.name, "error": failure.to_dict()}},
            )
            continue

        records = decode_blobs(blobs, backend.name)
        for record in records:
            store.put(record)
        total += len(records)

        logger.info(
            "Sessions restored from %s",
            backend.name,
            extra={"extra_data": {
                "backend": backend.name,
                "count": len(records),
                "total_in_memory": len(store),
            }},
        )
        if telemetry is not None:
            telemetry.record_metric(
                "sessions.restored", len(records), tags={"backend": backend.name}
            )
    return total
