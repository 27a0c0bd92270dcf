"""Tests for tool-call parameter validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from omnisearch_mcp.orchestration.base import Capability, ToolCall
from omnisearch_mcp.orchestration.errors import ErrorKind, InvalidParametersError
from omnisearch_mcp.orchestration.validation import (
    MAX_QUERY_LENGTH,
    sanitize_query,
    validate_domains,
    validate_tool_call,
)


def _call(capability: Capability, **parameters) -> ToolCall:
    return ToolCall(capability=capability, parameters=parameters)


class TestSearchParameters:
    """Tests for search and answer parameters."""

    def test_query_sanitized(self):
        """Test control characters are stripped and whitespace trimmed."""
        params = validate_tool_call(_call(Capability.SEARCH, query="  hello\x00 world  "))

        assert params["query"] == "hello world"

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_query_required(self, query):
        """Test empty or missing queries are rejected."""
        with pytest.raises(InvalidParametersError) as exc_info:
            validate_tool_call(_call(Capability.ANSWER, query=query))

        assert exc_info.value.kind is ErrorKind.INVALID_PARAMETERS

    def test_query_too_long(self):
        """Test over-long queries are rejected rather than truncated."""
        with pytest.raises(InvalidParametersError, match="exceeds"):
            validate_tool_call(_call(Capability.SEARCH, query="x" * (MAX_QUERY_LENGTH + 1)))

    @pytest.mark.parametrize("limit", [0, 101, 2.5, True, "ten"])
    def test_limit_bounds(self, limit):
        """Test limit must be an integer in range."""
        with pytest.raises(InvalidParametersError, match="limit"):
            validate_tool_call(_call(Capability.SEARCH, query="q", limit=limit))

    def test_limit_integral_float_accepted(self):
        """Test 5.0 is accepted as 5."""
        params = validate_tool_call(_call(Capability.SEARCH, query="q", limit=5.0))

        assert params["limit"] == 5

    def test_domain_filters(self):
        """Test comma-separated domains are split and validated."""
        params = validate_tool_call(
            _call(Capability.SEARCH, query="q", include_domains="python.org, docs.python.org")
        )

        assert params["include_domains"] == ["python.org", "docs.python.org"]

    def test_duplicate_domain(self):
        """Test duplicate domains are rejected case-insensitively."""
        with pytest.raises(InvalidParametersError, match="Duplicate"):
            validate_domains("exclude_domains", ["Example.com", "example.com"])

    def test_bad_domain(self):
        """Test malformed domains are rejected."""
        with pytest.raises(InvalidParametersError, match="Invalid domain"):
            validate_domains("include_domains", ["not a domain"])

    def test_none_values_dropped(self):
        """Test unset optional parameters disappear."""
        params = validate_tool_call(_call(Capability.SEARCH, query="q", limit=None))

        assert "limit" not in params


class TestExtractParameters:
    """Tests for extract parameters."""

    def test_single_url_becomes_list(self):
        """Test url is normalized to urls."""
        params = validate_tool_call(_call(Capability.EXTRACT, url="https://example.com/a"))

        assert params == {"urls": ["https://example.com/a"]}

    def test_url_required(self):
        """Test extraction needs at least one URL."""
        with pytest.raises(InvalidParametersError, match="required"):
            validate_tool_call(_call(Capability.EXTRACT))

    @pytest.mark.parametrize("url", ["ftp://example.com", "example.com", "http://"])
    def test_invalid_url(self, url):
        """Test non-http URLs are rejected."""
        with pytest.raises(InvalidParametersError):
            validate_tool_call(_call(Capability.EXTRACT, urls=[url]))

    def test_duplicate_urls(self):
        """Test duplicate URLs are rejected."""
        with pytest.raises(InvalidParametersError, match="Duplicate"):
            validate_tool_call(
                _call(Capability.EXTRACT, urls=["https://a.com/x", "https://A.com/x"])
            )


class TestEnrichParameters:
    """Tests for enrich parameters."""

    def test_content_or_query(self):
        """Test enrich accepts either content or a query."""
        assert validate_tool_call(_call(Capability.ENRICH, content=" claim "))["content"] == "claim"
        assert validate_tool_call(_call(Capability.ENRICH, query="subject"))["query"] == "subject"

    def test_missing_input(self):
        """Test enrich needs some input."""
        with pytest.raises(InvalidParametersError):
            validate_tool_call(_call(Capability.ENRICH))


class TestToolCall:
    """Tests for ToolCall model checks."""

    def test_bad_provider_name(self):
        """Test provider names are checked before resolution."""
        call = ToolCall(
            capability=Capability.SEARCH, provider="bad name!", parameters={"query": "q"}
        )

        with pytest.raises(InvalidParametersError, match="provider"):
            validate_tool_call(call)

    def test_nested_parameter_rejected(self):
        """Test parameters must be scalars or lists of scalars."""
        with pytest.raises(ValidationError):
            ToolCall(capability=Capability.SEARCH, parameters={"query": {"nested": 1}})

    def test_sanitize_truncates(self):
        """Test sanitize_query caps length."""
        assert len(sanitize_query("a" * 5000)) == MAX_QUERY_LENGTH
