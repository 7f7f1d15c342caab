"""
Health checks for content-reveal.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from content_reveal.runtime.sessions import StreamingEngine


class HealthStatus(Enum):
    """Health status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


@dataclass
class ComponentHealth:
    """Health status of a single component.

    Attributes:
        name: Component identifier.
        status: Health status.
        message: Optional status message.
        latency_ms: Time the check took.
        metadata: Additional component data.
    """

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class HealthCheck:
    """Aggregated health of the streaming engine and its collaborators.

    Built-in components:
        sessions  - active session count against max_active_sessions
    Anything else (e.g. ResourceRegistry.health) is added with
    register_checker().

    Example:
        health = HealthCheck(engine)
        health.register_checker("resources", registry.health)
        health.check()["status"]   # "healthy"
    """

    def __init__(self, engine: StreamingEngine | None = None, cache_ms: float = 1000.0):
        self._engine = engine
        self._cache_ms = cache_ms
        self._checkers: dict[str, Callable[[], ComponentHealth]] = {}
        self._last_check: dict[str, Any] | None = None
        self._last_check_time: float = 0.0

    def register_checker(self, name: str, checker: Callable[[], ComponentHealth]) -> None:
        self._checkers[name] = checker

    def check(self, force: bool = False) -> dict[str, Any]:
        """Perform a health check.

        Args:
            force: Ignore the cached result.

        Returns:
            Dictionary with overall status and per-component details.
        """
        now = time.time()
        if (
            not force
            and self._last_check is not None
            and (now - self._last_check_time) * 1000 < self._cache_ms
        ):
            return self._last_check

        status: dict[str, Any] = {"status": HealthStatus.HEALTHY.value, "timestamp": now, "components": {}}
        worst = HealthStatus.HEALTHY

        for comp in self.check_components():
            status["components"][comp.name] = {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
                **comp.metadata,
            }
            if _SEVERITY[comp.status] > _SEVERITY[worst]:
                worst = comp.status

        status["status"] = worst.value
        self._last_check = status
        self._last_check_time = now
        return status

    def check_components(self) -> list[ComponentHealth]:
        results = [self._check_sessions()]

        for name, checker in self._checkers.items():
            start = time.time()
            try:
                result = checker()
            except Exception as e:
                result = ComponentHealth(name=name, status=HealthStatus.UNHEALTHY, message=str(e))
            result.latency_ms = (time.time() - start) * 1000
            results.append(result)

        return results

    def is_healthy(self) -> bool:
        return self.check(force=True)["status"] == HealthStatus.HEALTHY.value

    def _check_sessions(self) -> ComponentHealth:
        if self._engine is None:
            return ComponentHealth(
                name="sessions",
                status=HealthStatus.UNKNOWN,
                message="No engine configured",
            )

        active = self._engine.active_count
        limit = self._engine.config.max_active_sessions
        status = HealthStatus.HEALTHY
        message = ""
        if active > limit:
            status = HealthStatus.DEGRADED
            message = f"{active} active sessions exceeds {limit}"

        return ComponentHealth(
            name="sessions",
            status=status,
            message=message,
            metadata={"active": active, "limit": limit},
        )
