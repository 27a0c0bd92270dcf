"""Validation of inbound tool-call parameters.

Validation runs before any provider is resolved or invoked, so malformed
calls never cost an upstream request.
"""

from __future__ import annotations

import re
from typing import Any

from .base import Capability, ToolCall
from .errors import InvalidParametersError

MAX_QUERY_LENGTH = 1000
MIN_RESULTS_LIMIT = 1
MAX_RESULTS_LIMIT = 100
MAX_DOMAIN_COUNT = 50
MAX_DOMAIN_LENGTH = 253
MAX_URL_COUNT = 50
MAX_URL_LENGTH = 2048
MAX_CONTENT_LENGTH = 100_000

_PROVIDER_RE = re.compile(r"^[A-Za-z0-9_-]{1,50}$")
_DOMAIN_RE = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$"
)
_URL_RE = re.compile(r"^https?://[-\w.]+(?::\d+)?(?:[/?#][^\s]*)?$", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def sanitize_query(query: str) -> str:
    """Strip control characters, trim and truncate a query string."""
    cleaned = _CONTROL_RE.sub("", query).strip()
    return cleaned[:MAX_QUERY_LENGTH]


def validate_provider_name(provider: str) -> str:
    """Check a provider identity is well formed.

    Raises:
        InvalidParametersError: If the name is empty, too long or has bad characters
    """
    if not _PROVIDER_RE.match(provider or ""):
        raise InvalidParametersError(
            f"Invalid provider name: {provider!r} (use letters, digits, '_' or '-')"
        )
    return provider


def _require_text(params: dict[str, Any], key: str, max_length: int) -> str:
    value = params.get(key)
    if not isinstance(value, str):
        raise InvalidParametersError(f"Parameter '{key}' is required and must be a string")
    if len(value) > max_length:
        raise InvalidParametersError(f"Parameter '{key}' exceeds {max_length} characters")
    cleaned = sanitize_query(value) if max_length == MAX_QUERY_LENGTH else value.strip()
    if not cleaned:
        raise InvalidParametersError(f"Parameter '{key}' cannot be empty")
    return cleaned


def _validate_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise InvalidParametersError("Parameter 'limit' must be an integer")
    limit = int(value)
    if not MIN_RESULTS_LIMIT <= limit <= MAX_RESULTS_LIMIT:
        raise InvalidParametersError(
            f"Parameter 'limit' must be between {MIN_RESULTS_LIMIT} and {MAX_RESULTS_LIMIT}"
        )
    return limit


def _string_list(key: str, value: Any) -> list[str]:
    if isinstance(value, str):
        value = [item for item in value.split(",") if item.strip()]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidParametersError(f"Parameter '{key}' must be a list of strings")
    return [v.strip() for v in value]


def validate_domains(key: str, value: Any) -> list[str]:
    """Validate a domain filter list."""
    domains = _string_list(key, value)
    if len(domains) > MAX_DOMAIN_COUNT:
        raise InvalidParametersError(f"Parameter '{key}' allows at most {MAX_DOMAIN_COUNT} domains")

    seen: set[str] = set()
    for domain in domains:
        if len(domain) > MAX_DOMAIN_LENGTH or not _DOMAIN_RE.match(domain):
            raise InvalidParametersError(f"Invalid domain in '{key}': {domain!r}")
        lowered = domain.lower()
        if lowered in seen:
            raise InvalidParametersError(f"Duplicate domain in '{key}': {domain!r}")
        seen.add(lowered)
    return domains


def validate_urls(key: str, value: Any) -> list[str]:
    """Validate a list of http(s) URLs."""
    urls = _string_list(key, value)
    if not urls:
        raise InvalidParametersError(f"Parameter '{key}' requires at least one URL")
    if len(urls) > MAX_URL_COUNT:
        raise InvalidParametersError(f"Parameter '{key}' allows at most {MAX_URL_COUNT} URLs")

    seen: set[str] = set()
    for url in urls:
        if len(url) > MAX_URL_LENGTH:
            raise InvalidParametersError(f"URL exceeds {MAX_URL_LENGTH} characters")
        if not _URL_RE.match(url):
            raise InvalidParametersError(f"Invalid URL: {url!r}")
        lowered = url.lower()
        if lowered in seen:
            raise InvalidParametersError(f"Duplicate URL: {url!r}")
        seen.add(lowered)
    return urls


def validate_tool_call(call: ToolCall) -> dict[str, Any]:
    """Validate and normalize a tool call's parameters for its capability.

    Args:
        call: Incoming tool call

    Returns:
        A new parameter mapping with sanitized, normalized values

    Raises:
        InvalidParametersError: If any parameter is missing or malformed
    """
    if call.provider is not None:
        validate_provider_name(call.provider)

    params = {key: value for key, value in call.parameters.items() if value is not None}
    params.pop("provider", None)

    if call.capability in (Capability.SEARCH, Capability.ANSWER):
        params["query"] = _require_text(params, "query", MAX_QUERY_LENGTH)
    elif call.capability is Capability.EXTRACT:
        if "urls" in params:
            params["urls"] = validate_urls("urls", params["urls"])
        elif "url" in params:
            params["urls"] = validate_urls("url", [params.pop("url")])
        else:
            raise InvalidParametersError("Parameter 'url' or 'urls' is required")
        params.pop("url", None)
    elif call.capability is Capability.ENRICH:
        if "content" in params:
            params["content"] = _require_text(params, "content", MAX_CONTENT_LENGTH)
        elif "query" in params:
            params["query"] = _require_text(params, "query", MAX_QUERY_LENGTH)
        else:
            raise InvalidParametersError("Parameter 'query' or 'content' is required")

    if "limit" in params:
        params["limit"] = _validate_limit(params["limit"])
    for key in ("include_domains", "exclude_domains"):
        if key in params:
            params[key] = validate_domains(key, params[key])

    return params
