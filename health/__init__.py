"""
Health check module for the session cache.

This module provides health checks for the durable session backends.
"""

from health.service import (
    HealthCheckService,
    HealthStatus,
    DependencyHealth,
)

__all__ = [
    "HealthCheckService",
    "HealthStatus",
    "DependencyHealth",
]
