"""Error taxonomy for provider orchestration.

Two families live here:

- ``ProviderError`` and subclasses are raised by adapters to describe what
  the upstream service did (bad key, throttled, 5xx...).
- ``OrchestrationError`` and subclasses are raised by the orchestration core
  itself (unknown provider, missing credentials...).

Both are reduced to a :class:`ClassifiedError` before leaving the
orchestration layer; callers only ever see taxonomy kinds.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Classified failure kinds surfaced to callers."""

    PROVIDER_UNKNOWN = "provider_unknown"
    PROVIDER_DISABLED = "provider_disabled"
    NO_PROVIDER_FOR_CAPABILITY = "no_provider_for_capability"
    INVALID_PARAMETERS = "invalid_parameters"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    TRANSIENT_UPSTREAM = "transient_upstream"
    TERMINAL_UPSTREAM = "terminal_upstream"
    MALFORMED_PROVIDER_RESPONSE = "malformed_provider_response"
    OVERLOADED = "overloaded"
    DEADLINE_EXCEEDED = "deadline_exceeded"

    @property
    def retryable(self) -> bool:
        """Whether a caller may usefully retry a call that failed this way."""
        return self in CALLER_RETRYABLE_KINDS

    @property
    def retried_internally(self) -> bool:
        """Whether the resilience policy retries this kind itself."""
        return self in POLICY_RETRYABLE_KINDS


POLICY_RETRYABLE_KINDS = frozenset(
    {ErrorKind.RATE_LIMITED, ErrorKind.TIMEOUT, ErrorKind.TRANSIENT_UPSTREAM}
)
CALLER_RETRYABLE_KINDS = POLICY_RETRYABLE_KINDS | {ErrorKind.OVERLOADED}


class ClassifiedError(BaseModel):
    """A taxonomy-tagged failure, stripped of provider-native detail.

    Attributes:
        kind: Error kind from the taxonomy
        message: Human-readable, actionable message
        retryable: Whether the caller may retry later
        provider: Provider identity involved, if any
        capability: Capability requested, if known
        missing_credentials: Credential keys to set (ProviderDisabled only)
        status_code: Upstream HTTP status, if one was observed
        retry_after: Upstream-suggested wait in seconds, if any
    """

    kind: ErrorKind = Field(description="Error kind")
    message: str = Field(description="Human-readable message")
    retryable: bool = Field(default=False, description="Whether the caller may retry")
    provider: str | None = Field(default=None, description="Provider identity")
    capability: str | None = Field(default=None, description="Requested capability")
    missing_credentials: list[str] = Field(
        default_factory=list, description="Credential keys that must be set"
    )
    status_code: int | None = Field(default=None, description="Upstream HTTP status")
    retry_after: float | None = Field(default=None, ge=0.0, description="Suggested wait")

    @classmethod
    def of(cls, kind: ErrorKind, message: str, **details: object) -> ClassifiedError:
        """Build an error whose ``retryable`` flag follows the taxonomy."""
        return cls(kind=kind, message=message, retryable=kind.retryable, **details)


# ---------------------------------------------------------------------------
# Adapter-side errors
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base exception raised by provider adapters."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize provider error.

        Args:
            message: Error message
            provider: Identity of the provider that raised the error
            status_code: HTTP status returned by the provider, if any
        """
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class ProviderAuthenticationError(ProviderError):
    """Credentials were rejected by the provider."""


class ProviderRateLimitError(ProviderError):
    """The provider signalled throttling."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider: str | None = None,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, provider=provider, status_code=status_code)


class ProviderInvalidParametersError(ProviderError):
    """The request failed the provider's input validation."""


class ProviderUpstreamError(ProviderError):
    """Upstream failure; retryable only for 5xx or network-level causes."""


class ProviderTimeoutError(ProviderError):
    """The provider did not answer in time."""


class ProviderResponseError(ProviderError):
    """The provider answered with a payload we cannot use."""


# ---------------------------------------------------------------------------
# Orchestration-side errors
# ---------------------------------------------------------------------------


class OrchestrationError(Exception):
    """Failure detected by the orchestration core, already classified."""

    def __init__(self, error: ClassifiedError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


class ProviderUnknownError(OrchestrationError):
    """The requested provider identity is not registered."""

    def __init__(self, identity: str) -> None:
        super().__init__(
            ClassifiedError.of(
                ErrorKind.PROVIDER_UNKNOWN,
                f"Unknown provider: {identity}",
                provider=identity,
            )
        )


class ProviderDisabledError(OrchestrationError):
    """The provider is known but its credentials are missing."""

    def __init__(self, identity: str, missing: list[str] | tuple[str, ...]) -> None:
        keys = list(missing)
        hint = " and ".join(keys) if keys else "its credentials"
        super().__init__(
            ClassifiedError.of(
                ErrorKind.PROVIDER_DISABLED,
                f"Provider '{identity}' is disabled: set {hint} to enable it",
                provider=identity,
                missing_credentials=keys,
            )
        )


class NoProviderForCapabilityError(OrchestrationError):
    """No enabled provider implements the requested capability."""

    def __init__(self, capability: str, missing: dict[str, list[str]] | None = None) -> None:
        message = f"No enabled provider supports capability '{capability}'"
        keys: list[str] = []
        if missing:
            hints = [f"{name} ({', '.join(needed)})" for name, needed in missing.items()]
            message = f"{message}. Configure one of: {'; '.join(hints)}"
            for needed in missing.values():
                keys.extend(k for k in needed if k not in keys)
        super().__init__(
            ClassifiedError.of(
                ErrorKind.NO_PROVIDER_FOR_CAPABILITY,
                message,
                capability=capability,
                missing_credentials=keys,
            )
        )


class InvalidParametersError(OrchestrationError):
    """The tool call parameters failed validation before dispatch."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(
            ClassifiedError.of(ErrorKind.INVALID_PARAMETERS, message, provider=provider)
        )


def kind_for_status(status_code: int | None) -> ErrorKind:
    """Map an upstream HTTP status to an error kind."""
    if status_code is None or status_code >= 500:
        return ErrorKind.TRANSIENT_UPSTREAM
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code in (400, 422):
        return ErrorKind.INVALID_PARAMETERS
    return ErrorKind.TERMINAL_UPSTREAM
