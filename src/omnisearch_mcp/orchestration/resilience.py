"""Resilience policy: timeouts, retries with backoff, and per-provider limits.

Every adapter invocation goes through :meth:`ResiliencePolicy.execute`, which
drives one explicit state machine per call::

    Idle -> Attempting -> Succeeded
                       -> RetryScheduled -> Attempting
                       -> Failed

Clock, sleep and randomness are injectable so the state machine can be
tested without real network timing.
"""

from __future__ import annotations

import asyncio
import json
import math
import random
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from ..core.circuit_breaker import CircuitBreakerRegistry
from ..core.config import ResilienceConfig, RetryPolicyConfig
from ..core.logger import get_logger
from .base import Capability, ProviderAdapter, ProviderDescriptor, RawResult
from .errors import (
    ClassifiedError,
    ErrorKind,
    ProviderAuthenticationError,
    ProviderError,
    ProviderInvalidParametersError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUpstreamError,
    kind_for_status,
)

logger = get_logger("orchestration.resilience")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def _coerce_status(value: Any) -> int | None:
    """HTTP status as an int, or None when the value is not a usable status."""
    if isinstance(value, bool):
        return None
    try:
        status = int(value)
    except (TypeError, ValueError):
        return None
    return status if 100 <= status <= 599 else None


def _coerce_retry_after(value: Any) -> float | None:
    """Non-negative finite wait in seconds, or None."""
    if isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds):
        return None
    return max(0.0, seconds)


def classify_exception(
    exc: BaseException,
    provider: str | None = None,
    capability: Capability | None = None,
) -> ClassifiedError:
    """Map any adapter failure onto exactly one error kind.

    Args:
        exc: Exception raised by (or around) an adapter call
        provider: Provider identity for the error record
        capability: Capability for the error record

    Returns:
        ClassifiedError describing the failure
    """
    status_code = _coerce_status(getattr(exc, "status_code", None))
    retry_after: float | None = None
    message = str(exc) or type(exc).__name__

    if isinstance(exc, ProviderRateLimitError):
        kind = ErrorKind.RATE_LIMITED
        retry_after = _coerce_retry_after(exc.retry_after)
    elif isinstance(exc, ProviderAuthenticationError):
        kind = ErrorKind.TERMINAL_UPSTREAM
    elif isinstance(exc, ProviderInvalidParametersError):
        kind = ErrorKind.INVALID_PARAMETERS
    elif isinstance(exc, ProviderTimeoutError):
        kind = ErrorKind.TIMEOUT
    elif isinstance(exc, ProviderResponseError):
        kind = ErrorKind.MALFORMED_PROVIDER_RESPONSE
    elif isinstance(exc, ProviderUpstreamError):
        kind = kind_for_status(status_code)
    elif isinstance(exc, ProviderError):
        kind = ErrorKind.TERMINAL_UPSTREAM
    elif isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        kind = ErrorKind.TIMEOUT
        message = f"Request timed out ({type(exc).__name__})"
    elif isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        kind = kind_for_status(status_code)
        message = f"HTTP {status_code} from upstream"
    elif isinstance(exc, httpx.TransportError):
        kind = ErrorKind.TRANSIENT_UPSTREAM
        message = f"Network error: {message}"
    elif isinstance(exc, json.JSONDecodeError):
        kind = ErrorKind.MALFORMED_PROVIDER_RESPONSE
        message = f"Invalid JSON from provider: {message}"
    else:
        kind = ErrorKind.TERMINAL_UPSTREAM
        message = f"Unexpected adapter failure: {type(exc).__name__}: {message}"

    return ClassifiedError.of(
        kind,
        message,
        provider=provider,
        capability=capability.value if capability is not None else None,
        status_code=status_code,
        retry_after=retry_after,
    )


def compute_backoff(
    policy: RetryPolicyConfig,
    attempt: int,
    rng: Callable[[], float] = random.random,
    retry_after: float | None = None,
) -> float:
    """Delay before the attempt following ``attempt`` (1-based).

    Exponential backoff capped at ``max_backoff_seconds``; with jitter the
    delay is scaled by a factor in [0.5, 1.5) and capped again. An upstream
    ``retry_after`` hint acts as a floor.
    """
    delay = min(
        policy.backoff_seconds * (policy.backoff_multiplier ** (attempt - 1)),
        policy.max_backoff_seconds,
    )
    if policy.jitter:
        delay = min(delay * (0.5 + rng()), policy.max_backoff_seconds)
    if retry_after is not None:
        delay = max(delay, retry_after)
    return delay


class RetryPhase(str, Enum):
    """States of one resilient invocation."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRY_SCHEDULED = "retry_scheduled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RetryState:
    """Transient per-invocation retry bookkeeping."""

    started_at: float
    phase: RetryPhase = RetryPhase.IDLE
    attempts: int = 0
    elapsed: float = 0.0
    last_error: ClassifiedError | None = None
    delays: list[float] = field(default_factory=list)

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)

    def begin_attempt(self) -> None:
        self.phase = RetryPhase.ATTEMPTING
        self.attempts += 1

    def schedule_retry(self, error: ClassifiedError, delay: float) -> None:
        self.phase = RetryPhase.RETRY_SCHEDULED
        self.last_error = error
        self.delays.append(delay)

    def succeed(self, now: float) -> None:
        self.phase = RetryPhase.SUCCEEDED
        self.elapsed = now - self.started_at

    def fail(self, error: ClassifiedError, now: float) -> None:
        self.phase = RetryPhase.FAILED
        self.last_error = error
        self.elapsed = now - self.started_at


@dataclass
class ExecutionResult:
    """What the policy hands back: a raw result or a classified error."""

    state: RetryState
    raw: RawResult | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.raw is not None


class LimiterRejected(Exception):
    """A provider's concurrency cap (and queue) is full."""


class ConcurrencyLimiter:
    """Caps in-flight calls to one provider.

    With the ``queue`` policy, callers beyond the cap wait for a slot (up to
    ``max_queue`` waiters); with ``reject`` they are turned away at once.
    """

    def __init__(
        self,
        name: str,
        limit: int,
        policy: str = "queue",
        max_queue: int = 100,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.name = name
        self.limit = limit
        self.policy = policy
        self.max_queue = max_queue
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._waiting = 0
        self._peak = 0
        self._rejected = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak(self) -> int:
        return self._peak

    @asynccontextmanager
    async def slot(self, timeout: float | None = None) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block.

        Raises:
            LimiterRejected: When the cap (or the wait queue) is full
            asyncio.TimeoutError: When no slot frees up within ``timeout``
        """
        # Waiters are counted before the first await so admission is exact
        claimed = self._in_flight + self._waiting
        if claimed >= self.limit:
            if self.policy == "reject" or claimed - self.limit >= self.max_queue:
                self._rejected += 1
                raise LimiterRejected(
                    f"Provider '{self.name}' is at its concurrency limit ({self.limit})"
                )

        self._waiting += 1
        try:
            if timeout is None:
                await self._semaphore.acquire()
            else:
                await asyncio.wait_for(self._semaphore.acquire(), timeout)
        finally:
            self._waiting -= 1

        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        try:
            yield
        finally:
            self._in_flight -= 1
            self._semaphore.release()

    def get_stats(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "policy": self.policy,
            "in_flight": self._in_flight,
            "waiting": self._waiting,
            "peak_in_flight": self._peak,
            "rejected": self._rejected,
        }


class RateLimitExhausted(Exception):
    """No request token becomes available within the allowed wait."""

    def __init__(self, name: str, wait_seconds: float) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(
            f"Local rate limit for '{name}' exhausted; next slot in {wait_seconds:.1f}s"
        )


class RateLimiter:
    """Token bucket allowing ``requests_per_minute`` with an equal burst size.

    Tokens are reserved up front (the balance may go negative), so concurrent
    callers queue behind each other fairly.
    """

    def __init__(
        self,
        name: str,
        requests_per_minute: int,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.name = name
        self.capacity = float(requests_per_minute)
        self.rate = requests_per_minute / 60.0
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self, max_wait: float) -> None:
        """Take one token, waiting at most ``max_wait`` seconds.

        Raises:
            RateLimitExhausted: If the token would arrive too late
        """
        self._refill()
        self._tokens -= 1.0
        if self._tokens >= 0:
            return
        wait = -self._tokens / self.rate
        if wait > max_wait:
            self._tokens += 1.0
            raise RateLimitExhausted(self.name, wait)
        logger.debug("Rate limit reached for %s, waiting %.2fs", self.name, wait)
        await self._sleep(wait)


class ResiliencePolicy:
    """Wraps adapter invocations with timeouts, retries and limits."""

    def __init__(
        self,
        config: ResilienceConfig | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the policy.

        Args:
            config: Resilience configuration
            clock: Monotonic clock in seconds
            sleep: Coroutine used for backoff and rate-limit waits
            rng: Source of jitter in [0, 1)
        """
        self.config = config or ResilienceConfig()
        self._clock = clock
        self._sleep = sleep
        self._rng = rng
        self._limiters: dict[str, ConcurrencyLimiter] = {}
        self._rate_limiters: dict[str, RateLimiter] = {}
        self._breakers = CircuitBreakerRegistry(self.config.circuit_breaker, clock=clock)
        self._stats: dict[str, dict[str, Any]] = {}

    @property
    def breakers(self) -> CircuitBreakerRegistry:
        return self._breakers

    def now(self) -> float:
        return self._clock()

    def limiter_for(self, descriptor: ProviderDescriptor) -> ConcurrencyLimiter:
        limiter = self._limiters.get(descriptor.identity)
        if limiter is None:
            limiter = ConcurrencyLimiter(
                descriptor.identity,
                descriptor.max_concurrency,
                policy=self.config.concurrency_policy,
                max_queue=self.config.max_queue_size,
            )
            self._limiters[descriptor.identity] = limiter
        return limiter

    def rate_limiter_for(self, descriptor: ProviderDescriptor) -> RateLimiter | None:
        if not self.config.rate_limiting_enabled or descriptor.requests_per_minute is None:
            return None
        limiter = self._rate_limiters.get(descriptor.identity)
        if limiter is None:
            limiter = RateLimiter(
                descriptor.identity,
                descriptor.requests_per_minute,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._rate_limiters[descriptor.identity] = limiter
        return limiter

    def _record(self, identity: str, outcome: str) -> None:
        stats = self._stats.setdefault(identity, {"attempts": 0, "succeeded": 0, "failed": {}})
        if outcome == "attempt":
            stats["attempts"] += 1
        elif outcome == "succeeded":
            stats["succeeded"] += 1
        else:
            stats["failed"][outcome] = stats["failed"].get(outcome, 0) + 1

    async def execute(
        self,
        descriptor: ProviderDescriptor,
        adapter: ProviderAdapter,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        deadline_at: float,
    ) -> ExecutionResult:
        """Invoke an adapter under this policy.

        Args:
            descriptor: Provider metadata (timeout, limits, retry policy)
            adapter: Adapter to invoke
            parameters: Validated call parameters
            credentials: Credentials for the provider
            deadline_at: Absolute clock value at which the call must be over

        Returns:
            ExecutionResult with a raw result or a classified error
        """
        identity = descriptor.identity
        capability = descriptor.capability
        policy = descriptor.retry or self.config.retry
        state = RetryState(started_at=self._clock())
        breaker = (
            self._breakers.get_or_create(identity)
            if self.config.circuit_breaker.enabled
            else None
        )
        limiter = self.limiter_for(descriptor)
        rate_limiter = self.rate_limiter_for(descriptor)

        def fail(kind: ErrorKind, message: str) -> ExecutionResult:
            error = ClassifiedError.of(
                kind, message, provider=identity, capability=capability.value
            )
            return self._finish_failure(state, error)

        while True:
            remaining = deadline_at - self._clock()
            if remaining <= 0:
                return fail(
                    ErrorKind.DEADLINE_EXCEEDED,
                    self._deadline_message(identity, state),
                )

            if breaker is not None and not breaker.should_allow_request():
                return fail(
                    ErrorKind.OVERLOADED,
                    f"Provider '{identity}' is temporarily unavailable "
                    f"(circuit open, retry in {breaker.remaining_seconds():.1f}s)",
                )

            try:
                async with limiter.slot(timeout=remaining):
                    if rate_limiter is not None:
                        await rate_limiter.acquire(max_wait=deadline_at - self._clock())
                    attempt_timeout = min(descriptor.timeout_seconds, deadline_at - self._clock())
                    if attempt_timeout <= 0:
                        return fail(
                            ErrorKind.DEADLINE_EXCEEDED,
                            self._deadline_message(identity, state),
                        )
                    state.begin_attempt()
                    self._record(identity, "attempt")
                    raw = await asyncio.wait_for(
                        adapter.invoke(capability, parameters, credentials, attempt_timeout),
                        attempt_timeout,
                    )
            except LimiterRejected as exc:
                return fail(ErrorKind.OVERLOADED, str(exc))
            except RateLimitExhausted as exc:
                return fail(ErrorKind.RATE_LIMITED, str(exc))
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError as exc:
                if state.phase is not RetryPhase.ATTEMPTING or state.attempts == 0:
                    # Timed out waiting for a concurrency slot
                    return fail(
                        ErrorKind.DEADLINE_EXCEEDED,
                        f"No free slot for provider '{identity}' before the deadline",
                    )
                if deadline_at - self._clock() <= 0:
                    return fail(
                        ErrorKind.DEADLINE_EXCEEDED,
                        self._deadline_message(identity, state),
                    )
                error = classify_exception(exc, identity, capability)
            except Exception as exc:
                error = classify_exception(exc, identity, capability)
            else:
                if not isinstance(raw, RawResult):
                    return fail(
                        ErrorKind.MALFORMED_PROVIDER_RESPONSE,
                        f"Provider '{identity}' returned {type(raw).__name__} "
                        "instead of a result",
                    )
                if breaker is not None:
                    breaker.record_success()
                state.succeed(self._clock())
                self._record(identity, "succeeded")
                return ExecutionResult(state=state, raw=raw)

            if error.kind.retried_internally and breaker is not None:
                breaker.record_failure()

            if not error.kind.retried_internally:
                return self._finish_failure(state, error)

            if state.attempts >= policy.max_attempts:
                logger.warning(
                    "Provider %s failed after %d attempts: %s",
                    identity,
                    state.attempts,
                    error.message,
                )
                return self._finish_failure(state, error)

            delay = compute_backoff(policy, state.attempts, self._rng, error.retry_after)
            if self._clock() + delay >= deadline_at:
                state.last_error = error
                return fail(
                    ErrorKind.DEADLINE_EXCEEDED,
                    self._deadline_message(identity, state),
                )

            state.schedule_retry(error, delay)
            logger.warning(
                "Provider %s attempt %d/%d failed (%s): %s. Retrying in %.2fs...",
                identity,
                state.attempts,
                policy.max_attempts,
                error.kind.value,
                error.message,
                delay,
            )
            await self._sleep(delay)

    def _finish_failure(self, state: RetryState, error: ClassifiedError) -> ExecutionResult:
        state.fail(error, self._clock())
        if error.provider is not None:
            self._record(error.provider, error.kind.value)
        if error.kind is ErrorKind.TERMINAL_UPSTREAM:
            logger.error("Provider %s failed: %s", error.provider, error.message)
        else:
            logger.warning(
                "Provider %s failed (%s): %s", error.provider, error.kind.value, error.message
            )
        return ExecutionResult(state=state, error=error)

    @staticmethod
    def _deadline_message(identity: str, state: RetryState) -> str:
        message = f"Deadline exceeded calling '{identity}' after {state.attempts} attempt(s)"
        if state.last_error is not None:
            message = f"{message}; last error: {state.last_error.message}"
        return message

    def get_stats(self) -> dict[str, Any]:
        """Get per-provider resilience statistics."""
        return {
            "providers": {name: dict(stats) for name, stats in self._stats.items()},
            "limiters": {name: lim.get_stats() for name, lim in self._limiters.items()},
            "circuit_breakers": self._breakers.get_all_status(),
        }
