"""Core infrastructure: configuration, logging and circuit breakers."""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from .config import (
    CacheConfig,
    CircuitBreakerPolicyConfig,
    LoggingConfig,
    OmnisearchConfig,
    ProviderOverrideConfig,
    ResilienceConfig,
    RetryPolicyConfig,
    ServerConfig,
    load_credential_source,
)
from .logger import get_logger, log_exception, setup_logging

__all__ = [
    "CacheConfig",
    "CircuitBreaker",
    "CircuitBreakerPolicyConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    "LoggingConfig",
    "OmnisearchConfig",
    "ProviderOverrideConfig",
    "ResilienceConfig",
    "RetryPolicyConfig",
    "ServerConfig",
    "get_logger",
    "load_credential_source",
    "log_exception",
    "setup_logging",
]
