"""Health, readiness and liveness reporting for the orchestration layer."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..core.circuit_breaker import CircuitState
from ..core.logger import get_logger
from .base import Capability, SearchHitList

if TYPE_CHECKING:
    from .dispatcher import Dispatcher

logger = get_logger("health")

HEALTH_CACHE_KEY = "omnisearch:health_check"


class ServiceStatus(str, Enum):
    """Overall service health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckStatus(str, Enum):
    """Outcome of a single health check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class HealthCheck:
    """Result of one named check."""

    status: CheckStatus
    message: str | None = None
    duration_ms: float = 0.0
    last_checked: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 3),
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
        }


def overall_status(checks: dict[str, HealthCheck]) -> ServiceStatus:
    """Any failing check makes the service unhealthy; any warning degrades it."""
    statuses = {check.status for check in checks.values()}
    if CheckStatus.FAIL in statuses:
        return ServiceStatus.UNHEALTHY
    if CheckStatus.WARN in statuses:
        return ServiceStatus.DEGRADED
    return ServiceStatus.HEALTHY


class HealthChecker:
    """Evaluates provider availability, circuit breakers and the result cache.

    Example:
        ```python
        checker = HealthChecker(dispatcher, version="1.0.0")
        report = await checker.check_health()
        print(report["status"])
        ```
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        version: str = "0.0.0",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dispatcher = dispatcher
        self._version = version
        self._clock = clock
        self._started = clock()

    def uptime_seconds(self) -> float:
        return max(0.0, self._clock() - self._started)

    def check_providers(self) -> HealthCheck:
        registry = self._dispatcher.registry
        enabled = registry.enabled_identities()
        if not enabled:
            return HealthCheck(CheckStatus.FAIL, "No providers enabled")

        uncovered = [
            capability.value
            for capability in Capability
            if not registry.resolve_by_capability(capability)
        ]
        if uncovered:
            return HealthCheck(
                CheckStatus.WARN,
                f"{len(enabled)} providers enabled; none for: {', '.join(uncovered)}",
            )
        return HealthCheck(CheckStatus.PASS, f"{len(enabled)} providers enabled")

    def check_circuit_breakers(self) -> HealthCheck:
        states = self._dispatcher.policy.breakers.get_all_states()
        open_breakers = sorted(name for name, state in states.items() if state == CircuitState.OPEN)
        if open_breakers:
            return HealthCheck(
                CheckStatus.WARN, f"Open circuit breakers: {', '.join(open_breakers)}"
            )
        return HealthCheck(CheckStatus.PASS)

    async def check_cache(self) -> HealthCheck:
        """Round-trip a marker entry through the result cache.

        A broken cache only degrades the service: calls fall through to
        providers when the cache cannot be read or written.
        """
        cache = self._dispatcher.cache
        if cache is None:
            return HealthCheck(CheckStatus.PASS, "Cache disabled")

        errors_before = cache.get_stats().get("errors", 0)
        try:
            await cache.put(HEALTH_CACHE_KEY, SearchHitList(), 5.0)
            stored = await cache.get(HEALTH_CACHE_KEY)
            await cache.delete(HEALTH_CACHE_KEY)
        except Exception as exc:
            logger.error("Cache health check failed: %s", exc)
            return HealthCheck(CheckStatus.WARN, f"Cache error: {exc}")

        if cache.get_stats().get("errors", 0) > errors_before:
            return HealthCheck(CheckStatus.WARN, "Cache backend reported errors")
        if stored is None:
            return HealthCheck(CheckStatus.WARN, "Cache did not return the stored entry")
        return HealthCheck(CheckStatus.PASS)

    async def _timed(
        self, check: Callable[[], HealthCheck] | Callable[[], Awaitable[HealthCheck]]
    ) -> HealthCheck:
        start = time.perf_counter()
        result = check()
        if not isinstance(result, HealthCheck):
            result = await result
        result.duration_ms = (time.perf_counter() - start) * 1000
        result.last_checked = datetime.now(timezone.utc)
        return result

    def collect_metrics(self) -> dict[str, Any]:
        stats = self._dispatcher.get_stats()
        total = stats["total_calls"]
        cache_stats = stats["cache_stats"] or {}
        providers = stats["resilience"]["providers"]
        return {
            "total_requests": total,
            "successful_requests": stats["successful_calls"],
            "failed_requests": stats["failed_calls"],
            "cache_hit_rate": stats["cache_hits"] / total if total > 0 else 0.0,
            "cache_size": cache_stats.get("size"),
            "active_providers": sorted(
                name for name, entry in providers.items() if entry["attempts"] > 0
            ),
        }

    async def check_health(self) -> dict[str, Any]:
        """Run every check and roll them up into one report."""
        checks = {
            "providers": await self._timed(self.check_providers),
            "circuit_breakers": await self._timed(self.check_circuit_breakers),
            "cache": await self._timed(self.check_cache),
        }
        status = overall_status(checks)
        if status != ServiceStatus.HEALTHY:
            logger.warning("Health check reports %s", status.value)
        return {
            "status": status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds(), 3),
            "version": self._version,
            "checks": {name: check.to_dict() for name, check in checks.items()},
            "metrics": self.collect_metrics(),
        }

    def check_readiness(self) -> dict[str, Any]:
        """Ready once at least one provider can serve calls."""
        providers = self.check_providers()
        return {
            "ready": providers.status != CheckStatus.FAIL,
            "message": providers.message,
        }

    def check_liveness(self) -> dict[str, Any]:
        return {"alive": True, "uptime_seconds": round(self.uptime_seconds(), 3)}


__all__ = [
    "CheckStatus",
    "HealthCheck",
    "HealthChecker",
    "ServiceStatus",
    "overall_status",
]
