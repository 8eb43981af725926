"""
Error handling module for the session cache.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- CacheException class for cache-specific exceptions
- Factory helpers for each error kind
"""

from errors.codes import ErrorCode, get_category
from errors.exceptions import (
    CacheException,
    record_decode_error,
    backend_not_connected,
    backend_write_failed,
    backend_delete_failed,
    backend_load_failed,
    backend_timeout,
)

__all__ = [
    "ErrorCode",
    "get_category",
    "CacheException",
    "record_decode_error",
    "backend_not_connected",
    "backend_write_failed",
    "backend_delete_failed",
    "backend_load_failed",
    "backend_timeout",
]
