"""Tests for shared provider HTTP helpers."""

from __future__ import annotations

import httpx
import pytest

from omnisearch_mcp.orchestration.base import Capability
from omnisearch_mcp.orchestration.errors import (
    ProviderAuthenticationError,
    ProviderInvalidParametersError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUpstreamError,
)
from omnisearch_mcp.providers._http import (
    HttpProviderAdapter,
    document_payload,
    expect_list,
    expect_mapping,
    parse_json,
    raise_for_provider_status,
    search_hit,
)

REQUEST = httpx.Request("GET", "https://api.example.com/search")


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=REQUEST, **kwargs)


class TestRaiseForProviderStatus:
    """Tests for status code mapping."""

    def test_success_passes(self):
        """Test 2xx responses do not raise."""
        raise_for_provider_status(_response(200), "p")

    @pytest.mark.parametrize(
        ("status", "error_type"),
        [
            (401, ProviderAuthenticationError),
            (403, ProviderAuthenticationError),
            (400, ProviderInvalidParametersError),
            (422, ProviderInvalidParametersError),
            (408, ProviderTimeoutError),
            (404, ProviderUpstreamError),
            (500, ProviderUpstreamError),
            (503, ProviderUpstreamError),
        ],
    )
    def test_status_mapping(self, status, error_type):
        """Test each status maps to its adapter error."""
        with pytest.raises(error_type) as exc_info:
            raise_for_provider_status(_response(status, text="nope"), "p")

        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "p"

    def test_rate_limit_retry_after(self):
        """Test Retry-After seconds are kept."""
        with pytest.raises(ProviderRateLimitError) as exc_info:
            raise_for_provider_status(_response(429, headers={"Retry-After": "7"}), "p")

        assert exc_info.value.retry_after == 7.0

    def test_rate_limit_unparseable_retry_after(self):
        """Test HTTP-date Retry-After values are ignored."""
        response = _response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})

        with pytest.raises(ProviderRateLimitError) as exc_info:
            raise_for_provider_status(response, "p")

        assert exc_info.value.retry_after is None

    def test_error_detail_truncated(self):
        """Test long error bodies are cut short in the message."""
        with pytest.raises(ProviderUpstreamError) as exc_info:
            raise_for_provider_status(_response(502, text="x" * 1000), "p")

        assert len(str(exc_info.value)) < 300


class TestParsing:
    """Tests for body parsing helpers."""

    def test_parse_json_invalid(self):
        """Test HTML error pages become ProviderResponseError."""
        with pytest.raises(ProviderResponseError, match="invalid JSON"):
            parse_json(_response(200, text="<html>oops</html>"), "p")

    def test_expect_mapping_path(self):
        """Test nested objects are walked."""
        data = {"data": {"output": "hi"}}

        assert expect_mapping(data, "p", "data") == {"output": "hi"}

    def test_expect_mapping_missing(self):
        """Test a missing level names the path."""
        with pytest.raises(ProviderResponseError, match="'data'"):
            expect_mapping({"meta": {}}, "p", "data")
        with pytest.raises(ProviderResponseError, match="'response'"):
            expect_mapping([], "p")

    def test_expect_list(self):
        """Test list extraction treats missing keys as empty."""
        assert expect_list({"results": [1]}, "results", "p") == [1]
        assert expect_list({}, "results", "p") == []
        with pytest.raises(ProviderResponseError):
            expect_list({"results": "x"}, "results", "p")
        with pytest.raises(ProviderResponseError):
            expect_list(["x"], "results", "p")

    def test_search_hit_cleanup(self):
        """Test whitespace in snippets is collapsed and empty fields dropped."""
        hit = search_hit(" Title ", " https://a.com ", "line one\n\n  line two", published_date="")

        assert hit == {
            "title": "Title",
            "url": "https://a.com",
            "snippet": "line one line two",
        }

    def test_search_hit_missing_snippet(self):
        """Test a missing snippet becomes an empty string."""
        assert search_hit("T", "https://a.com", None, score=0.5)["snippet"] == ""


class TestDocumentPayload:
    """Tests for document_payload."""

    def test_single_page(self):
        """Test one page maps directly."""
        payload = document_payload([{"url": "https://a.com", "title": "A", "content": "body"}])

        assert payload == {
            "url": "https://a.com",
            "title": "A",
            "content": "body",
            "format": "markdown",
        }

    def test_several_pages(self):
        """Test several pages are joined and segmented in order."""
        payload = document_payload(
            [
                {"url": "https://a.com", "title": "A", "content": "first"},
                {"url": "https://b.com", "content": "second"},
            ]
        )

        assert payload["url"] == "https://a.com"
        assert payload["content"].startswith("# A\n\nfirst")
        assert "# https://b.com\n\nsecond" in payload["content"]
        assert [s["index"] for s in payload["segments"]] == [0, 1]


class _EchoAdapter(HttpProviderAdapter):
    identity = "echo"
    capability = Capability.SEARCH
    base_url = "https://echo.example.com"

    async def call(self, parameters, credentials, timeout):
        return {"hits": [], "echo": dict(parameters)}


class TestHttpProviderAdapter:
    """Tests for the HttpProviderAdapter base."""

    @pytest.mark.anyio
    async def test_invoke_wraps_payload(self):
        """Test the payload is wrapped with provider metadata."""
        raw = await _EchoAdapter().invoke(Capability.SEARCH, {"query": "q"}, {}, 5.0)

        assert raw.payload["echo"] == {"query": "q"}
        assert raw.metadata == {"provider": "echo"}

    @pytest.mark.anyio
    async def test_invoke_wrong_capability(self):
        """Test an adapter refuses capabilities it does not implement."""
        with pytest.raises(ProviderInvalidParametersError):
            await _EchoAdapter().invoke(Capability.ANSWER, {"query": "q"}, {}, 5.0)

    def test_base_url_override(self):
        """Test the base URL can be pointed elsewhere."""
        assert _EchoAdapter("http://localhost:9999").base_url == "http://localhost:9999"
        assert _EchoAdapter().base_url == "https://echo.example.com"
