"""Circuit breaker pattern implementation for fault tolerance."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from .config import CircuitBreakerPolicyConfig
from .logger import get_logger

logger = get_logger("core.circuit_breaker")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Circuit breaker guarding calls to a single provider."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerPolicyConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerPolicyConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float | None = None
        self._lock = threading.RLock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _check_state_transition(self) -> None:
        """Move OPEN to HALF_OPEN once the cool-down has elapsed."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            elapsed = self._clock() - self._last_failure_time
            if elapsed >= self.config.timeout_seconds:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                logger.info("Circuit '%s' transitioned to HALF_OPEN", self.name)

    def remaining_seconds(self) -> float:
        """Seconds until an open circuit lets a trial request through."""
        with self._lock:
            if self._state != CircuitState.OPEN or self._last_failure_time is None:
                return 0.0
            elapsed = self._clock() - self._last_failure_time
            return max(0.0, self.config.timeout_seconds - elapsed)

    def should_allow_request(self) -> bool:
        """Check if request should be allowed through."""
        with self._lock:
            self._check_state_transition()
            return self._state != CircuitState.OPEN

    def record_success(self) -> None:
        """Record a successful operation."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
                    self._success_count = 0
                    logger.info("Circuit '%s' closed", self.name)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def record_failure(self) -> None:
        """Record a failed operation."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._last_failure_time = self._clock()
                logger.warning("Circuit '%s' re-opened from HALF_OPEN", self.name)
            elif self._state == CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.config.failure_threshold:
                    self._state = CircuitState.OPEN
                    self._last_failure_time = self._clock()
                    logger.warning(
                        "Circuit '%s' opened after %d failures", self.name, self._failure_count
                    )

    def get_state_info(self) -> dict[str, Any]:
        """Get current state information."""
        with self._lock:
            self._check_state_transition()
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "remaining_seconds": self.remaining_seconds(),
            }


class CircuitBreakerRegistry:
    """Registry for managing per-provider circuit breaker instances."""

    def __init__(
        self,
        config: CircuitBreakerPolicyConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CircuitBreakerPolicyConfig()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, self.config, clock=self._clock)
                self._breakers[name] = breaker
            return breaker

    def get_all_states(self) -> dict[str, CircuitState]:
        return {name: cb.state for name, cb in self._breakers.items()}

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status information for all circuit breakers."""
        return {name: cb.get_state_info() for name, cb in self._breakers.items()}
