"""
Telemetry service for structured logging.

This module provides structured JSON logging with session correlation and
lightweight metric recording. Background persistence writes set
``session_id_var`` so every log line emitted while flushing a session
carries its id.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Dict
from contextvars import ContextVar


# Id of the session being persisted in the current task, if any
session_id_var: ContextVar[str] = ContextVar("session_id", default="")


class JSONFormatter(logging.Formatter):
    """
    Custom log formatter that outputs logs in JSON format.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry
    - session_id: Session being persisted, when set

    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted string containing the log entry
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        session_id = session_id_var.get("")
        if session_id:
            log_data["session_id"] = session_id

        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


class TelemetryService:
    """
    Centralized telemetry for the session cache.

    This service provides:
    - Structured JSON logging on stdout
    - Custom metrics recording (emitted as DEBUG log entries)
    """

    def __init__(self, settings: Optional[Any] = None):
        """
        Initialize the telemetry service.

        Args:
            settings: Application settings containing log_level
        """
        self.settings = settings
        self._logger: Optional[logging.Logger] = None
        self._setup_logging()

    def _setup_logging(self) -> None:
        """
        Configure structured JSON logging.

        Sets up the root logger with JSONFormatter and configures
        the log level based on settings.
        """
        log_level_str = "INFO"
        if self.settings and hasattr(self.settings, "log_level"):
            log_level_str = self.settings.log_level

        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicate logs
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(log_level)
        stdout_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(stdout_handler)

        self._logger = logging.getLogger("telemetry")
        self._logger.info("Telemetry service initialized", extra={
            "extra_data": {"log_level": log_level_str}
        })

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a custom metric.

        Args:
            name: Name of the metric (e.g. "sessions.expired")
            value: Metric value
            tags: Optional tags for metric dimensions
        """
        metric_data: Dict[str, Any] = {
            "metric_name": name,
            "metric_value": value,
        }

        if tags:
            metric_data["tags"] = tags

        self._logger.debug(
            f"Metric: {name}={value}",
            extra={"extra_data": metric_data}
        )


# Global telemetry service instance
_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """
    Get the global telemetry service instance.

    Returns:
        The telemetry service instance, or None if not initialized
    """
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """
    Initialize the global telemetry service.

    Args:
        settings: Application settings for configuration

    Returns:
        The initialized telemetry service
    """
    global _telemetry_service
    _telemetry_service = TelemetryService(settings)
    return _telemetry_service
