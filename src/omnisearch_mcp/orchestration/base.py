"""Base models and interfaces for provider orchestration."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.config import ProviderOverrideConfig, RetryPolicyConfig
from .errors import ClassifiedError

IDENTITY_PATTERN = r"^[A-Za-z0-9_-]{1,50}$"
_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


class Capability(str, Enum):
    """Categories of operation that several providers may implement."""

    SEARCH = "search"
    ANSWER = "answer"
    EXTRACT = "extract"
    ENRICH = "enrich"

    @property
    def cacheable(self) -> bool:
        """Whether results for this capability may be served from cache."""
        return self is not Capability.ENRICH


class ProviderDescriptor(BaseModel):
    """Static, immutable metadata for one provider identity.

    Attributes:
        identity: Stable provider key (cache-key and log-correlation component)
        capability: The capability this provider implements
        required_credentials: Ordered credential keys that must all be set
        timeout_seconds: Hard timeout for a single attempt
        max_concurrency: Max in-flight calls to this provider
        requests_per_minute: Rate-limit class (None disables rate limiting)
        retry: Retry policy override (None uses the configured default)
        cache_ttl_seconds: TTL for cached results (None uses the cache default)
        priority: Fallback order within a capability (lower first)
        description: Human-readable description
    """

    model_config = ConfigDict(frozen=True)

    identity: str = Field(pattern=IDENTITY_PATTERN, description="Provider identity")
    capability: Capability = Field(description="Capability category")
    required_credentials: tuple[str, ...] = Field(
        default=(), description="Credential keys required to enable the provider"
    )
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Per-attempt timeout")
    max_concurrency: int = Field(default=8, ge=1, description="Max in-flight calls")
    requests_per_minute: int | None = Field(default=100, ge=1, description="Rate limit")
    retry: RetryPolicyConfig | None = Field(default=None, description="Retry policy override")
    cache_ttl_seconds: float | None = Field(default=None, gt=0.0, description="Cache TTL")
    priority: int = Field(default=100, ge=0, description="Fallback priority (lower first)")
    description: str = Field(default="", description="Provider description")

    def with_overrides(self, override: ProviderOverrideConfig | None) -> ProviderDescriptor:
        """Return a copy of this descriptor with configured overrides applied."""
        if override is None:
            return self
        updates = {
            key: value
            for key, value in override.model_dump(exclude_none=True).items()
            if key != "retry"
        }
        if override.retry is not None:
            updates["retry"] = override.retry
        return self.model_copy(update=updates)


class ToolCall(BaseModel):
    """A single normalized tool invocation.

    Attributes:
        capability: Requested capability
        provider: Explicit provider identity, or None for "any provider"
        parameters: Parameter mapping (string keys to scalar/array values)
        deadline_seconds: Overall budget for this call (None uses the default)
    """

    capability: Capability = Field(description="Target capability")
    provider: str | None = Field(default=None, description="Explicit provider identity")
    parameters: dict[str, Any] = Field(default_factory=dict, description="Call parameters")
    deadline_seconds: float | None = Field(default=None, gt=0.0, description="Overall deadline")

    @field_validator("parameters")
    @classmethod
    def _check_parameter_values(cls, value: dict[str, Any]) -> dict[str, Any]:
        for key, item in value.items():
            items = item if isinstance(item, (list, tuple)) else [item]
            for element in items:
                if not isinstance(element, (str, int, float, bool)) and element is not None:
                    raise ValueError(f"Parameter '{key}' must be a scalar or a list of scalars")
        return value


class RawResult(BaseModel):
    """Adapter success payload before normalization.

    ``payload`` uses the loose, capability-generic field names that the
    normalizer understands (``hits``, ``text``, ``content``, ``facts``...).
    """

    payload: dict[str, Any] = Field(default_factory=dict, description="Raw payload")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Provider metadata")


# ---------------------------------------------------------------------------
# Canonical result shapes
# ---------------------------------------------------------------------------


class _Canonical(BaseModel):
    model_config = ConfigDict(extra="forbid")


def _check_url(value: str) -> str:
    value = value.strip()
    if not _URL_RE.match(value):
        raise ValueError(f"not an http(s) URL: {value!r}")
    return value


class SearchHit(_Canonical):
    """One search result."""

    title: str = Field(description="Result title")
    url: str = Field(description="Result URL")
    snippet: str = Field(description="Text snippet or description")
    score: float | None = Field(default=None, description="Provider relevance score")
    published_date: str | None = Field(default=None, description="Publication date")

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _check_url(value)


class SearchHitList(_Canonical):
    """Ordered list of search hits."""

    type: Literal["search_hits"] = "search_hits"
    hits: list[SearchHit] = Field(default_factory=list, description="Ordered hits")

    @property
    def count(self) -> int:
        return len(self.hits)


class Citation(_Canonical):
    """A source supporting an answer or enrichment."""

    url: str = Field(description="Source URL")
    title: str | None = Field(default=None, description="Source title")

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _check_url(value)


class AnswerText(_Canonical):
    """A single AI-generated answer."""

    type: Literal["answer"] = "answer"
    text: str = Field(min_length=1, description="Answer text")
    citations: list[Citation] = Field(default_factory=list, description="Supporting sources")


class DocumentSegment(_Canonical):
    """One page or section of an extracted document."""

    index: int = Field(ge=0, description="Segment position")
    content: str = Field(description="Segment body")
    title: str | None = Field(default=None, description="Segment title")
    url: str | None = Field(default=None, description="Segment source URL")


class ExtractedDocument(_Canonical):
    """Content extracted from one or more URLs."""

    type: Literal["document"] = "document"
    url: str = Field(description="Source URL")
    content: str = Field(min_length=1, description="Body as text or markdown")
    format: Literal["markdown", "text"] = Field(default="markdown", description="Body format")
    title: str | None = Field(default=None, description="Document title")
    segments: list[DocumentSegment] = Field(default_factory=list, description="Segmentation")

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _check_url(value)


FactValue = Union[str, int, float, bool, list[Union[str, int, float, bool]]]


class EnrichmentRecord(_Canonical):
    """Structured key/value facts about a subject."""

    type: Literal["enrichment"] = "enrichment"
    subject: str = Field(min_length=1, description="What the facts are about")
    facts: dict[str, FactValue] = Field(min_length=1, description="Structured facts")
    sources: list[Citation] = Field(default_factory=list, description="Supporting sources")


NormalizedResult = Annotated[
    Union[SearchHitList, AnswerText, ExtractedDocument, EnrichmentRecord],
    Field(discriminator="type"),
]


class InvocationOutcome(BaseModel):
    """Result of handling one tool call: exactly one of result or error.

    Attributes:
        capability: Capability that was requested
        provider: Provider that served (or would have served) the call
        result: Canonical result on success
        error: Classified error on failure
        cached: Whether the result was served from the cache
        attempts: Adapter invocations made (0 for cache hits and early failures)
        retries: Attempts beyond the first
        elapsed_ms: Wall time spent handling the call
    """

    capability: Capability = Field(description="Requested capability")
    provider: str | None = Field(default=None, description="Provider identity")
    result: NormalizedResult | None = Field(default=None, description="Canonical result")
    error: ClassifiedError | None = Field(default=None, description="Classified error")
    cached: bool = Field(default=False, description="Served from cache")
    attempts: int = Field(default=0, ge=0, description="Adapter invocations")
    retries: int = Field(default=0, ge=0, description="Retries performed")
    elapsed_ms: float = Field(default=0.0, ge=0.0, description="Handling time")

    @model_validator(mode="after")
    def _exactly_one_variant(self) -> InvocationOutcome:
        if (self.result is None) == (self.error is None):
            raise ValueError("InvocationOutcome must hold exactly one of result or error")
        return self

    @property
    def ok(self) -> bool:
        return self.result is not None

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the transport layer."""
        payload: dict[str, Any] = {
            "ok": self.ok,
            "capability": self.capability.value,
            "provider": self.provider,
            "cached": self.cached,
            "attempts": self.attempts,
            "retries": self.retries,
        }
        if self.result is not None:
            payload["result"] = self.result.model_dump(mode="json", exclude_none=True)
        else:
            assert self.error is not None
            payload["error"] = self.error.model_dump(mode="json", exclude_none=True)
        return payload


class ProviderAdapter(ABC):
    """Abstract base class for provider adapters.

    Adapters translate parameters to one provider's native protocol and back.
    They make exactly one outbound attempt per call: retries, timeouts and
    limits belong to the resilience policy.
    """

    identity: str = ""
    capability: Capability = Capability.SEARCH

    @abstractmethod
    async def invoke(
        self,
        capability: Capability,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> RawResult:
        """Perform one call against the provider.

        Args:
            capability: Capability being exercised
            parameters: Validated call parameters
            credentials: The provider's required credentials
            timeout: Seconds the outbound request may take

        Returns:
            RawResult with a capability-generic payload

        Raises:
            ProviderError: When the provider reports a failure
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.identity}>"
