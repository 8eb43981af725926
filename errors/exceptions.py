"""
Exception classes for the session cache.

This module provides the CacheException class and convenience factory
functions for creating cache-specific exceptions with proper error codes.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_category


class CacheException(Exception):
    """
    Base exception class for all session cache errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - category: The error category derived from the code
    - details: Optional additional context (e.g., backend name, key)

    Example:
        raise CacheException(
            error_code=ErrorCode.RECORD_DECODE_ERROR,
            message="Stored session is not valid JSON",
            details={"backend": "redis"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize a CacheException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.category = get_category(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for structured logging.

        Returns:
            Dictionary containing error_code, category, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "category": self.category,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"CacheException(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, details={self.details!r})"
        )


# Convenience factory functions for common error types

def record_decode_error(
    message: str,
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a record decode error exception."""
    return CacheException(
        error_code=ErrorCode.RECORD_DECODE_ERROR,
        message=message,
        details=details
    )


def backend_not_connected(
    backend: str,
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a backend not connected exception."""
    return CacheException(
        error_code=ErrorCode.BACKEND_NOT_CONNECTED,
        message=f"{backend} backend not connected. Call connect() first.",
        details={"backend": backend, **(details or {})}
    )


def backend_write_failed(
    message: str = "Could not persist session",
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a backend write failure exception."""
    return CacheException(
        error_code=ErrorCode.BACKEND_WRITE_FAILED,
        message=message,
        details=details
    )


def backend_delete_failed(
    message: str = "Could not delete session",
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a backend delete failure exception."""
    return CacheException(
        error_code=ErrorCode.BACKEND_DELETE_FAILED,
        message=message,
        details=details
    )


def backend_load_failed(
    message: str = "Could not load sessions",
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a backend load failure exception."""
    return CacheException(
        error_code=ErrorCode.BACKEND_LOAD_FAILED,
        message=message,
        details=details
    )


def backend_timeout(
    message: str = "Backend call timed out",
    details: Optional[dict[str, Any]] = None
) -> CacheException:
    """Create a backend timeout exception."""
    return CacheException(
        error_code=ErrorCode.BACKEND_TIMEOUT,
        message=message,
        details=details
    )

