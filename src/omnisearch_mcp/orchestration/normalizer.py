"""Result normalizer: raw adapter payloads to canonical result shapes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from ..core.logger import get_logger
from .base import (
    AnswerText,
    Capability,
    EnrichmentRecord,
    ExtractedDocument,
    NormalizedResult,
    RawResult,
    SearchHitList,
)
from .errors import ProviderResponseError

logger = get_logger("orchestration.normalizer")

CANONICAL_SHAPES: dict[Capability, type[BaseModel]] = {
    Capability.SEARCH: SearchHitList,
    Capability.ANSWER: AnswerText,
    Capability.EXTRACT: ExtractedDocument,
    Capability.ENRICH: EnrichmentRecord,
}


class NormalizationError(ProviderResponseError):
    """A successful adapter payload did not fit its canonical shape."""


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors()[:3]:
        location = ".".join(str(part) for part in error["loc"]) or "payload"
        problems.append(f"{location}: {error['msg']}")
    more = exc.error_count() - len(problems)
    if more > 0:
        problems.append(f"... and {more} more")
    return "; ".join(problems)


def normalize(
    capability: Capability, raw: RawResult, provider: str | None = None
) -> NormalizedResult:
    """Map a raw adapter success onto the capability's canonical shape.

    Validation is all-or-nothing: a payload that violates the shape in any
    field is rejected rather than partially populated.

    Args:
        capability: Capability the adapter served
        raw: Adapter payload
        provider: Provider identity, for error reporting

    Returns:
        A canonical result

    Raises:
        NormalizationError: If the payload does not fit the canonical shape
    """
    shape = CANONICAL_SHAPES.get(capability)
    if shape is None:
        raise NormalizationError(
            f"No canonical shape for capability '{capability}'", provider=provider
        )

    data: dict[str, Any] = dict(raw.payload)
    declared = data.pop("type", None)
    expected = shape.model_fields["type"].default
    if declared is not None and declared != expected:
        raise NormalizationError(
            f"Provider returned a '{declared}' payload for capability '{capability.value}'",
            provider=provider,
        )

    try:
        result = shape.model_validate(data)
    except ValidationError as exc:
        logger.debug("Normalization of %s payload failed: %s", capability.value, exc)
        raise NormalizationError(
            f"Malformed {capability.value} response from provider: {_describe(exc)}",
            provider=provider,
        ) from exc
    return result  # type: ignore[return-value]
