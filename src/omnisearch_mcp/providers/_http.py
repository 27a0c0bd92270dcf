"""Shared HTTP helpers for provider adapters."""

from __future__ import annotations

import json
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

import httpx

from ..core.logger import get_logger
from ..orchestration.base import Capability, ProviderAdapter, RawResult
from ..orchestration.errors import (
    ProviderAuthenticationError,
    ProviderInvalidParametersError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUpstreamError,
)

logger = get_logger("providers.http")

USER_AGENT = "omnisearch-mcp"
DEFAULT_LIMIT = 10


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str:
    text = response.text.strip()
    return text[:200] if text else response.reason_phrase


def raise_for_provider_status(response: httpx.Response, provider: str) -> None:
    """Raise the adapter error matching a non-2xx response.

    Args:
        response: Provider response
        provider: Provider identity for the error

    Raises:
        ProviderError: Subclass chosen by status code
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    detail = _error_detail(response)
    if status in (401, 403):
        raise ProviderAuthenticationError(
            f"{provider} rejected the credentials ({status})",
            provider=provider,
            status_code=status,
        )
    if status == 429:
        raise ProviderRateLimitError(
            f"{provider} rate limit exceeded",
            provider=provider,
            retry_after=_retry_after(response),
        )
    if status in (400, 422):
        raise ProviderInvalidParametersError(
            f"{provider} rejected the request: {detail}",
            provider=provider,
            status_code=status,
        )
    if status == 408:
        raise ProviderTimeoutError(
            f"{provider} timed out (408)", provider=provider, status_code=status
        )
    raise ProviderUpstreamError(
        f"{provider} API error: {status} - {detail}",
        provider=provider,
        status_code=status,
    )


def parse_json(response: httpx.Response, provider: str) -> Any:
    """Decode a JSON body, mapping decode failures to ProviderResponseError."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProviderResponseError(
            f"{provider} returned invalid JSON", provider=provider, status_code=response.status_code
        ) from exc


async def request_json(
    method: str,
    url: str,
    *,
    provider: str,
    timeout: float,
    **kwargs: Any,
) -> Any:
    """Send one request and return its decoded JSON body.

    httpx transport and timeout errors propagate unchanged; the resilience
    policy classifies them.
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    headers.update(kwargs.pop("headers", None) or {})
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(method, url, headers=headers, **kwargs)
        raise_for_provider_status(response, provider)
        return parse_json(response, provider)


def expect_mapping(data: Any, provider: str, *path: str) -> Mapping[str, Any]:
    """Walk ``path`` through nested objects, requiring each level to be a mapping."""
    current = data
    for depth in range(len(path) + 1):
        if depth:
            current = current.get(path[depth - 1])
        if not isinstance(current, Mapping):
            where = ".".join(path[:depth]) or "response"
            raise ProviderResponseError(
                f"{provider} returned no '{where}' object", provider=provider
            )
    return current


def expect_list(data: Any, key: str, provider: str) -> list[Any]:
    """Return ``data[key]`` as a list; a missing key counts as empty."""
    if not isinstance(data, Mapping):
        raise ProviderResponseError(f"{provider} returned a non-object response", provider=provider)
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProviderResponseError(f"{provider} returned a non-list '{key}'", provider=provider)
    return value


def search_hit(
    title: Any,
    url: Any,
    snippet: Any,
    score: Any = None,
    published_date: Any = None,
) -> dict[str, Any]:
    """Build one hit in the loose payload form the normalizer reads."""
    hit: dict[str, Any] = {
        "title": (title or "").strip() if isinstance(title, str) else title,
        "url": url.strip() if isinstance(url, str) else url,
        "snippet": " ".join(snippet.split()) if isinstance(snippet, str) else (snippet or ""),
    }
    if score is not None:
        hit["score"] = score
    if published_date:
        hit["published_date"] = str(published_date)
    return hit


def document_payload(pages: list[dict[str, Any]], fmt: str = "markdown") -> dict[str, Any]:
    """Combine extracted pages into one document payload.

    One page maps directly; several pages become one document whose body
    joins them and whose segments keep each page separately.
    """
    if len(pages) == 1:
        page = pages[0]
        return {
            "url": page.get("url"),
            "title": page.get("title"),
            "content": page.get("content"),
            "format": fmt,
        }

    segments = [
        {
            "index": index,
            "url": page.get("url"),
            "title": page.get("title"),
            "content": page.get("content") or "",
        }
        for index, page in enumerate(pages)
    ]
    body = "\n\n---\n\n".join(
        f"# {page.get('title') or page.get('url')}\n\n{page.get('content') or ''}" for page in pages
    )
    return {
        "url": pages[0].get("url") if pages else None,
        "content": body if pages else "",
        "format": fmt,
        "segments": segments,
    }


class HttpProviderAdapter(ProviderAdapter):
    """Base for adapters speaking JSON over HTTP.

    Subclasses implement :meth:`call` for their capability; ``invoke``
    checks the capability and wraps the payload.
    """

    def __init__(self, base_url: str | None = None) -> None:
        if base_url is not None:
            self.base_url = base_url

    async def invoke(
        self,
        capability: Capability,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> RawResult:
        if capability is not self.capability:
            raise ProviderInvalidParametersError(
                f"{self.identity} does not support {capability.value}", provider=self.identity
            )
        logger.debug("%s %s call", self.identity, capability.value)
        payload = await self.call(parameters, credentials, timeout)
        return RawResult(payload=payload, metadata={"provider": self.identity})

    @abstractmethod
    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        """Perform the provider request and return the loose payload."""

    async def _json(self, method: str, url: str, timeout: float, **kwargs: Any) -> Any:
        return await request_json(method, url, provider=self.identity, timeout=timeout, **kwargs)
