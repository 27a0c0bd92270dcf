"""Provider orchestration: probing, routing, resilience, caching and normalization."""

from .base import (
    AnswerText,
    Capability,
    Citation,
    DocumentSegment,
    EnrichmentRecord,
    ExtractedDocument,
    InvocationOutcome,
    NormalizedResult,
    ProviderAdapter,
    ProviderDescriptor,
    RawResult,
    SearchHit,
    SearchHitList,
    ToolCall,
)
from .cache import (
    MemoryResultCache,
    RedisResultCache,
    ResultCache,
    build_cache,
    make_cache_key,
)
from .credentials import EnabledProviderSet, probe
from .dispatcher import Dispatcher, build_dispatcher
from .health import CheckStatus, HealthCheck, HealthChecker, ServiceStatus
from .errors import (
    ClassifiedError,
    ErrorKind,
    InvalidParametersError,
    NoProviderForCapabilityError,
    OrchestrationError,
    ProviderAuthenticationError,
    ProviderDisabledError,
    ProviderError,
    ProviderInvalidParametersError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnknownError,
    ProviderUpstreamError,
)
from .normalizer import NormalizationError, normalize
from .registry import ProviderRegistry, RegisteredProvider
from .resilience import (
    ConcurrencyLimiter,
    ExecutionResult,
    RateLimiter,
    ResiliencePolicy,
    RetryPhase,
    RetryState,
    classify_exception,
    compute_backoff,
)
from .validation import validate_tool_call

__all__ = [
    "AnswerText",
    "Capability",
    "Citation",
    "ClassifiedError",
    "CheckStatus",
    "ConcurrencyLimiter",
    "Dispatcher",
    "DocumentSegment",
    "EnabledProviderSet",
    "EnrichmentRecord",
    "ErrorKind",
    "ExecutionResult",
    "ExtractedDocument",
    "HealthCheck",
    "HealthChecker",
    "InvalidParametersError",
    "InvocationOutcome",
    "MemoryResultCache",
    "NoProviderForCapabilityError",
    "NormalizationError",
    "NormalizedResult",
    "OrchestrationError",
    "ProviderAdapter",
    "ProviderAuthenticationError",
    "ProviderDescriptor",
    "ProviderDisabledError",
    "ProviderError",
    "ProviderInvalidParametersError",
    "ProviderRateLimitError",
    "ProviderRegistry",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "ProviderUnknownError",
    "ProviderUpstreamError",
    "RateLimiter",
    "RawResult",
    "RedisResultCache",
    "RegisteredProvider",
    "ResiliencePolicy",
    "ResultCache",
    "RetryPhase",
    "RetryState",
    "SearchHit",
    "SearchHitList",
    "ServiceStatus",
    "ToolCall",
    "build_cache",
    "build_dispatcher",
    "classify_exception",
    "compute_backoff",
    "make_cache_key",
    "normalize",
    "probe",
    "validate_tool_call",
]
