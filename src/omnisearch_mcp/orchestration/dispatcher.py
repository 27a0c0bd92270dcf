"""Dispatcher: routes tool calls to providers through cache and resilience."""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.config import OmnisearchConfig
from ..core.logger import get_logger
from .base import (
    Capability,
    InvocationOutcome,
    NormalizedResult,
    ProviderAdapter,
    ProviderDescriptor,
    ToolCall,
)
from .cache import ResultCache, build_cache, make_cache_key
from .credentials import probe
from .errors import ClassifiedError, ErrorKind, OrchestrationError
from .normalizer import normalize
from .registry import ProviderRegistry, RegisteredProvider
from .resilience import ResiliencePolicy, classify_exception
from .validation import validate_tool_call

logger = get_logger("orchestration.dispatcher")


class Dispatcher:
    """Unified entry point for tool calls.

    Features:
    - Explicit provider selection or priority-ordered selection by capability
    - Result caching for idempotent capabilities
    - Timeouts, retries and limits via the resilience policy
    - Every outcome is a canonical result or a classified error
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        policy: ResiliencePolicy | None = None,
        cache: ResultCache | None = None,
        default_deadline_seconds: float = 90.0,
        default_cache_ttl_seconds: float = 3600.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Provider registry (read-only after startup)
            policy: Resilience policy wrapping adapter calls
            cache: Result cache; None means every lookup misses
            default_deadline_seconds: Overall budget when a call sets none
            default_cache_ttl_seconds: TTL when a provider declares none
        """
        self._registry = registry
        self._policy = policy or ResiliencePolicy()
        self._cache = cache
        self._default_deadline = default_deadline_seconds
        self._default_ttl = default_cache_ttl_seconds

        self._total_calls = 0
        self._successful_calls = 0
        self._failed_calls = 0
        self._cache_hits = 0
        self._errors_by_kind: dict[str, int] = {}

        logger.info(
            "Dispatcher initialized (enabled providers=%d, cache=%s)",
            len(registry.enabled_identities()),
            type(cache).__name__ if cache is not None else "off",
        )

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def cache(self) -> ResultCache | None:
        return self._cache

    @property
    def policy(self) -> ResiliencePolicy:
        return self._policy

    def _resolve(self, call: ToolCall) -> RegisteredProvider:
        if call.provider is not None:
            entry = self._registry.resolve(call.provider)
            if entry.descriptor.capability is not call.capability:
                raise OrchestrationError(
                    ClassifiedError.of(
                        ErrorKind.INVALID_PARAMETERS,
                        f"Provider '{call.provider}' implements "
                        f"'{entry.descriptor.capability.value}', not '{call.capability.value}'",
                        provider=call.provider,
                        capability=call.capability.value,
                    )
                )
            return entry
        return self._registry.resolve_first(call.capability)

    async def _cache_lookup(self, key: str) -> NormalizedResult | None:
        # A failing cache costs a provider call, never the call itself
        if self._cache is None:
            return None
        try:
            return await self._cache.get(key)
        except Exception as exc:
            logger.warning("Result cache read failed, treating as miss: %s", exc)
            return None

    async def _cache_store(
        self, key: str, result: NormalizedResult, ttl_seconds: float | None
    ) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.put(key, result, ttl_seconds or self._default_ttl)
        except Exception as exc:
            logger.warning("Result cache write failed: %s", exc)

    async def handle(self, call: ToolCall) -> InvocationOutcome:
        """Handle one tool call end to end.

        Never raises for provider or validation failures; those come back as
        an outcome holding a classified error.

        Args:
            call: The tool call

        Returns:
            InvocationOutcome with exactly one of result or error
        """
        self._total_calls += 1
        started = time.perf_counter()
        deadline_at = self._policy.now() + (call.deadline_seconds or self._default_deadline)
        capability = call.capability

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        try:
            parameters = validate_tool_call(call)
            entry = self._resolve(call)
        except OrchestrationError as exc:
            return self._failure(capability, call.provider, exc.error, elapsed_ms())

        descriptor = entry.descriptor
        identity = descriptor.identity
        cache_key: str | None = None

        if self._cache is not None and capability.cacheable:
            cache_key = make_cache_key(identity, capability, parameters)
            cached = await self._cache_lookup(cache_key)
            if cached is not None:
                self._cache_hits += 1
                self._successful_calls += 1
                logger.info("Cache hit: %s %s", identity, capability.value)
                return InvocationOutcome(
                    capability=capability,
                    provider=identity,
                    result=cached,
                    cached=True,
                    elapsed_ms=elapsed_ms(),
                )

        logger.debug("Dispatching %s call to %s", capability.value, identity)
        execution = await self._policy.execute(
            descriptor,
            entry.adapter,
            parameters,
            self._registry.enabled.credentials_for(identity),
            deadline_at,
        )
        attempts = execution.state.attempts
        retries = execution.state.retries

        if execution.raw is None:
            error = execution.error or ClassifiedError.of(
                ErrorKind.MALFORMED_PROVIDER_RESPONSE,
                f"Provider '{identity}' returned no result",
                provider=identity,
            )
            return self._failure(capability, identity, error, elapsed_ms(), attempts, retries)

        try:
            result = normalize(capability, execution.raw, provider=identity)
        except Exception as exc:
            error = classify_exception(exc, identity, capability)
            return self._failure(capability, identity, error, elapsed_ms(), attempts, retries)

        if cache_key is not None:
            await self._cache_store(cache_key, result, descriptor.cache_ttl_seconds)

        self._successful_calls += 1
        outcome = InvocationOutcome(
            capability=capability,
            provider=identity,
            result=result,
            attempts=attempts,
            retries=retries,
            elapsed_ms=elapsed_ms(),
        )
        logger.info(
            "%s call to %s succeeded in %.2fms (attempts=%d)",
            capability.value,
            identity,
            outcome.elapsed_ms,
            attempts,
        )
        return outcome

    def _failure(
        self,
        capability: Capability,
        provider: str | None,
        error: ClassifiedError,
        elapsed_ms: float,
        attempts: int = 0,
        retries: int = 0,
    ) -> InvocationOutcome:
        self._failed_calls += 1
        self._errors_by_kind[error.kind.value] = self._errors_by_kind.get(error.kind.value, 0) + 1
        if error.capability is None:
            error = error.model_copy(update={"capability": capability.value})
        logger.info("%s call failed (%s): %s", capability.value, error.kind.value, error.message)
        return InvocationOutcome(
            capability=capability,
            provider=provider,
            error=error,
            attempts=attempts,
            retries=retries,
            elapsed_ms=elapsed_ms,
        )

    async def close(self) -> None:
        if self._cache is not None:
            await self._cache.close()

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics.

        Returns:
            Dictionary with statistics
        """
        success_rate = (
            self._successful_calls / self._total_calls * 100 if self._total_calls > 0 else 0.0
        )
        return {
            "total_calls": self._total_calls,
            "successful_calls": self._successful_calls,
            "failed_calls": self._failed_calls,
            "success_rate_percent": round(success_rate, 2),
            "cache_hits": self._cache_hits,
            "errors_by_kind": dict(self._errors_by_kind),
            "registry": self._registry.get_stats(),
            "resilience": self._policy.get_stats(),
            "cache_stats": self._cache.get_stats() if self._cache is not None else None,
        }


def build_dispatcher(
    config: OmnisearchConfig,
    catalog: Iterable[tuple[ProviderDescriptor, ProviderAdapter]],
    credential_source: Mapping[str, str],
    policy: ResiliencePolicy | None = None,
    cache: ResultCache | None = None,
) -> Dispatcher:
    """Wire probe, registry, policy and cache into a dispatcher.

    Args:
        config: Application configuration
        catalog: Every known provider as (descriptor, adapter) pairs
        credential_source: Read-only key/value source probed once
        policy: Resilience policy (built from config when None)
        cache: Result cache (built from config when None)

    Returns:
        Ready-to-use Dispatcher
    """
    entries = [
        (descriptor.with_overrides(config.providers.get(descriptor.identity)), adapter)
        for descriptor, adapter in catalog
    ]
    enabled = probe([descriptor for descriptor, _ in entries], credential_source)

    registry = ProviderRegistry(enabled)
    for descriptor, adapter in entries:
        registry.register(descriptor, adapter)

    unknown_overrides = set(config.providers) - {d.identity for d, _ in entries}
    for name in sorted(unknown_overrides):
        logger.warning("Ignoring overrides for unknown provider: %s", name)

    return Dispatcher(
        registry,
        policy=policy or ResiliencePolicy(config.resilience),
        cache=cache if cache is not None else build_cache(config.cache),
        default_deadline_seconds=config.resilience.total_deadline_seconds,
        default_cache_ttl_seconds=config.cache.ttl_seconds,
    )
