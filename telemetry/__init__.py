"""
Telemetry module for structured logging.

This module provides:
- JSONFormatter for structured JSON log output
- TelemetryService for centralized logging and metrics
- session_id_var for correlating background persistence logs
"""

from telemetry.service import (
    JSONFormatter,
    TelemetryService,
    get_telemetry_service,
    initialize_telemetry,
    session_id_var,
)

__all__ = [
    "JSONFormatter",
    "TelemetryService",
    "get_telemetry_service",
    "initialize_telemetry",
    "session_id_var",
]
