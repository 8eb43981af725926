"""
Health check service for the session cache.

This module provides the HealthCheckService class that reports the health
of each enabled session backend. Memory is authoritative, so a failing
backend degrades durability but never makes the cache unhealthy.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from session.store import SessionBackend

logger = logging.getLogger(__name__)


def _utc_now_str() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


@dataclass
class DependencyHealth:
    """
    Health status of a single backend.

    Attributes:
        name: The backend name (e.g., "sqlite", "redis")
        healthy: Whether the backend is healthy and responding
        response_time_ms: The time taken to check the backend in milliseconds
        error: Optional error message if the check failed
    """
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class HealthStatus:
    """
    Overall health status of the cache.

    Attributes:
        status: Overall status - "healthy" or "degraded"
        timestamp: When the health check was performed
        dependencies: List of individual backend health statuses
    """
    status: str
    timestamp: datetime
    dependencies: list[DependencyHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status,
            "timestamp": self.timestamp.isoformat() + "Z",
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


class HealthCheckService:
    """
    Service for checking the health of session backends.

    Attributes:
        backends: The backends to check
        check_timeout: Timeout in seconds for each backend check (default: 5.0)
    """

    def __init__(
        self,
        backends: Sequence[SessionBackend],
        check_timeout: float = 5.0
    ):
        self.backends = list(backends)
        self.check_timeout = check_timeout

    async def check_readiness(self) -> HealthStatus:
        """
        Check all backends concurrently.

        Returns:
            HealthStatus: The aggregate status with per-backend results
        """
        dependencies = list(await asyncio.gather(
            *(self._check_backend(backend) for backend in self.backends)
        ))

        return HealthStatus(
            status=self._determine_overall_status(dependencies),
            timestamp=datetime.now(timezone.utc).replace(tzinfo=None),
            dependencies=dependencies
        )

    async def check_liveness(self) -> dict[str, Any]:
        """
        Simple liveness check - process is running.

        Does not check backends.
        """
        return {
            "status": "alive",
            "timestamp": _utc_now_str()
        }

    async def _check_backend(self, backend: SessionBackend) -> DependencyHealth:
        """
        Check one backend with timeout.

        Returns:
            DependencyHealth: The health status of the backend
        """
        start_time = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                backend.health_check(),
                timeout=self.check_timeout
            )

            elapsed_ms = (time.perf_counter() - start_time) * 1000

            if result:
                logger.debug(f"{backend.name} health check passed in {elapsed_ms:.2f}ms")
                return DependencyHealth(
                    name=backend.name,
                    healthy=True,
                    response_time_ms=elapsed_ms
                )
            logger.warning(f"{backend.name} health check returned False after {elapsed_ms:.2f}ms")
            return DependencyHealth(
                name=backend.name,
                healthy=False,
                response_time_ms=elapsed_ms,
                error=f"{backend.name} health check returned False"
            )

        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"{backend.name} health check timed out after {self.check_timeout} seconds"
            logger.warning(error_msg)
            return DependencyHealth(
                name=backend.name,
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )

        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"{backend.name} health check failed: {str(e)}"
            logger.error(error_msg)
            return DependencyHealth(
                name=backend.name,
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )

    def _determine_overall_status(self, dependencies: list[DependencyHealth]) -> str:
        """
        "healthy" when every backend is healthy (or none are enabled),
        otherwise "degraded".
        """
        if all(dep.healthy for dep in dependencies):
            return "healthy"
        return "degraded"
