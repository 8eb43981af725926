"""
Error code catalog for the session cache.

This module defines all error codes raised or logged by the session cache,
covering record decoding, backend connectivity and backend I/O failures.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used by the session cache.

    Each error code maps to a category:
    - decode: a single stored entry could not be turned into a record
    - backend: a durable backend call failed or was not possible
    """

    # Decode errors
    RECORD_DECODE_ERROR = "RECORD_DECODE_ERROR"
    """Stored blob is not a valid session record"""

    # Backend errors
    BACKEND_NOT_CONNECTED = "BACKEND_NOT_CONNECTED"
    """Backend used before connect() was called"""

    BACKEND_WRITE_FAILED = "BACKEND_WRITE_FAILED"
    """Debounced persistence write failed"""

    BACKEND_DELETE_FAILED = "BACKEND_DELETE_FAILED"
    """Backend delete failed"""

    BACKEND_LOAD_FAILED = "BACKEND_LOAD_FAILED"
    """Bulk load during restore failed"""

    BACKEND_TIMEOUT = "BACKEND_TIMEOUT"
    """Backend call exceeded the configured timeout"""


# Mapping of error codes to their category
ERROR_CODE_CATEGORY_MAP: dict[ErrorCode, str] = {
    ErrorCode.RECORD_DECODE_ERROR: "decode",
    ErrorCode.BACKEND_NOT_CONNECTED: "backend",
    ErrorCode.BACKEND_WRITE_FAILED: "backend",
    ErrorCode.BACKEND_DELETE_FAILED: "backend",
    ErrorCode.BACKEND_LOAD_FAILED: "backend",
    ErrorCode.BACKEND_TIMEOUT: "backend",
}


def get_category(error_code: ErrorCode) -> str:
    """
    Get the category for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The category name
    """
    return ERROR_CODE_CATEGORY_MAP[error_code]
