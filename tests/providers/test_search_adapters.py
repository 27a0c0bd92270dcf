"""Tests for search provider adapters.

HTTP adapters are exercised against pytest-httpx; each test registers one
response per expected request and checks both the outbound request and the
normalized result.
"""

from __future__ import annotations

import base64
import json
import re

import pytest
from duckduckgo_search.exceptions import (
    DuckDuckGoSearchException,
    RatelimitException,
    TimeoutException,
)

from omnisearch_mcp.orchestration.base import Capability, SearchHitList
from omnisearch_mcp.orchestration.errors import (
    ProviderAuthenticationError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUpstreamError,
)
from omnisearch_mcp.orchestration.normalizer import normalize
from omnisearch_mcp.providers.baidu import BaiduSearchAdapter
from omnisearch_mcp.providers.brave import BraveSearchAdapter
from omnisearch_mcp.providers.brightdata import BrightDataSearchAdapter
from omnisearch_mcp.providers.duckduckgo import DuckDuckGoSearchAdapter
from omnisearch_mcp.providers.exa import ExaSearchAdapter
from omnisearch_mcp.providers.google import GoogleSearchAdapter
from omnisearch_mcp.providers.kagi import KagiSearchAdapter
from omnisearch_mcp.providers.reddit import RedditSearchAdapter
from omnisearch_mcp.providers.tavily import TavilySearchAdapter


async def _search(adapter, credentials, **parameters) -> SearchHitList:
    raw = await adapter.invoke(Capability.SEARCH, parameters, credentials, 10.0)
    result = normalize(Capability.SEARCH, raw, provider=adapter.identity)
    assert isinstance(result, SearchHitList)
    return result


# ==============================================================================
# Tavily
# ==============================================================================


class TestTavilySearch:
    """Tests for TavilySearchAdapter."""

    CREDENTIALS = {"TAVILY_API_KEY": "tvly-test"}

    @pytest.mark.anyio
    async def test_search(self, httpx_mock):
        """Test request shape and result mapping."""
        httpx_mock.add_response(
            method="POST",
            url="https://api.tavily.com/search",
            json={
                "results": [
                    {
                        "title": "Asyncio docs",
                        "url": "https://docs.python.org/3/library/asyncio.html",
                        "content": "asyncio is a library\nto write concurrent code",
                        "score": 0.98,
                        "published_date": "2024-05-01",
                    },
                    {"title": "No URL", "content": "dropped"},
                ]
            },
        )

        result = await _search(
            TavilySearchAdapter(),
            self.CREDENTIALS,
            query="python asyncio",
            limit=3,
            include_domains=["python.org"],
        )

        request = httpx_mock.get_requests()[0]
        body = json.loads(request.content)
        assert request.headers["Authorization"] == "Bearer tvly-test"
        assert body["max_results"] == 3
        assert body["include_domains"] == ["python.org"]
        assert "exclude_domains" not in body
        assert result.count == 1
        assert result.hits[0].snippet == "asyncio is a library to write concurrent code"
        assert result.hits[0].score == 0.98

    @pytest.mark.anyio
    async def test_unauthorized(self, httpx_mock):
        """Test a 401 raises ProviderAuthenticationError."""
        httpx_mock.add_response(
            method="POST", url="https://api.tavily.com/search", status_code=401, text="bad key"
        )

        with pytest.raises(ProviderAuthenticationError):
            await _search(TavilySearchAdapter(), self.CREDENTIALS, query="q")

    @pytest.mark.anyio
    async def test_rate_limited(self, httpx_mock):
        """Test a 429 carries the Retry-After hint."""
        httpx_mock.add_response(
            method="POST",
            url="https://api.tavily.com/search",
            status_code=429,
            headers={"Retry-After": "12"},
        )

        with pytest.raises(ProviderRateLimitError) as exc_info:
            await _search(TavilySearchAdapter(), self.CREDENTIALS, query="q")

        assert exc_info.value.retry_after == 12.0

    @pytest.mark.anyio
    async def test_server_error(self, httpx_mock):
        """Test a 5xx raises ProviderUpstreamError."""
        httpx_mock.add_response(
            method="POST", url="https://api.tavily.com/search", status_code=502
        )

        with pytest.raises(ProviderUpstreamError) as exc_info:
            await _search(TavilySearchAdapter(), self.CREDENTIALS, query="q")

        assert exc_info.value.status_code == 502

    @pytest.mark.anyio
    async def test_invalid_json(self, httpx_mock):
        """Test an unparseable body raises ProviderResponseError."""
        httpx_mock.add_response(
            method="POST", url="https://api.tavily.com/search", text="<html>maintenance</html>"
        )

        with pytest.raises(ProviderResponseError):
            await _search(TavilySearchAdapter(), self.CREDENTIALS, query="q")


# ==============================================================================
# Brave
# ==============================================================================


class TestBraveSearch:
    """Tests for BraveSearchAdapter."""

    @pytest.mark.anyio
    async def test_search_with_site_operators(self, httpx_mock):
        """Test domain filters are folded into the query."""
        httpx_mock.add_response(
            method="GET",
            url=re.compile(r"https://api\.search\.brave\.com/res/v1/web/search\?.*"),
            json={
                "web": {
                    "results": [
                        {
                            "title": "Python",
                            "url": "https://www.python.org",
                            "description": "Official site",
                            "page_age": "2024-01-02T00:00:00",
                        }
                    ]
                }
            },
        )

        result = await _search(
            BraveSearchAdapter(),
            {"BRAVE_API_KEY": "brave-key"},
            query="python",
            limit=50,
            include_domains=["python.org"],
            exclude_domains=["w3schools.com"],
        )

        request = httpx_mock.get_requests()[0]
        assert request.headers["X-Subscription-Token"] == "brave-key"
        assert request.url.params["q"] == "python site:python.org -site:w3schools.com"
        assert request.url.params["count"] == "20"
        assert result.hits[0].published_date == "2024-01-02T00:00:00"

    @pytest.mark.anyio
    async def test_no_web_section(self, httpx_mock):
        """Test a response without web results yields no hits."""
        httpx_mock.add_response(
            url=re.compile(r"https://api\.search\.brave\.com/.*"), json={"type": "search"}
        )

        result = await _search(BraveSearchAdapter(), {"BRAVE_API_KEY": "k"}, query="q")

        assert result.count == 0


# ==============================================================================
# Kagi
# ==============================================================================


class TestKagiSearch:
    """Tests for KagiSearchAdapter."""

    @pytest.mark.anyio
    async def test_related_searches_skipped(self, httpx_mock):
        """Test only organic results (t == 0) become hits."""
        httpx_mock.add_response(
            url=re.compile(r"https://kagi\.com/api/v0/search\?.*"),
            json={
                "meta": {"id": "abc"},
                "data": [
                    {"t": 0, "url": "https://a.com", "title": "A", "snippet": "first"},
                    {"t": 1, "list": ["related query"]},
                    {"t": 0, "url": "https://b.com", "title": "B", "published": "2024-02-02"},
                ],
            },
        )

        result = await _search(KagiSearchAdapter(), {"KAGI_API_KEY": "kagi-key"}, query="q")

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == "Bot kagi-key"
        assert [hit.url for hit in result.hits] == ["https://a.com", "https://b.com"]
        assert result.hits[1].snippet == ""


# ==============================================================================
# Exa
# ==============================================================================


class TestExaSearch:
    """Tests for ExaSearchAdapter."""

    @pytest.mark.anyio
    async def test_search(self, httpx_mock):
        """Test camel-cased request fields and text snippets."""
        httpx_mock.add_response(
            method="POST",
            url="https://api.exa.ai/search",
            json={
                "results": [
                    {
                        "url": "https://arxiv.org/abs/1706.03762",
                        "title": None,
                        "text": "The dominant sequence transduction models",
                        "score": 0.4,
                        "publishedDate": "2017-06-12",
                    }
                ]
            },
        )

        result = await _search(
            ExaSearchAdapter(),
            {"EXA_API_KEY": "exa-key"},
            query="attention is all you need",
            exclude_domains=["medium.com"],
            category="research paper",
        )

        request = httpx_mock.get_requests()[0]
        body = json.loads(request.content)
        assert request.headers["x-api-key"] == "exa-key"
        assert body["numResults"] == 10
        assert body["excludeDomains"] == ["medium.com"]
        assert body["category"] == "research paper"
        assert result.hits[0].title == "https://arxiv.org/abs/1706.03762"


# ==============================================================================
# Google
# ==============================================================================


class TestGoogleSearch:
    """Tests for GoogleSearchAdapter."""

    CREDENTIALS = {"GOOGLE_API_KEY": "g-key", "GOOGLE_SEARCH_ENGINE_ID": "cx-id"}

    @pytest.mark.anyio
    async def test_search(self, httpx_mock):
        """Test key, engine id and the 10-result cap."""
        httpx_mock.add_response(
            url=re.compile(r"https://www\.googleapis\.com/customsearch/v1\?.*"),
            json={
                "items": [
                    {"title": "Python", "link": "https://www.python.org", "snippet": "Welcome"}
                ]
            },
        )

        result = await _search(
            GoogleSearchAdapter(),
            self.CREDENTIALS,
            query="python",
            limit=50,
            include_domains=["python.org"],
        )

        params = httpx_mock.get_requests()[0].url.params
        assert params["key"] == "g-key"
        assert params["cx"] == "cx-id"
        assert params["num"] == "10"
        assert params["siteSearch"] == "python.org"
        assert result.hits[0].url == "https://www.python.org"

    @pytest.mark.anyio
    async def test_multiple_domains(self, httpx_mock):
        """Test several domains become site: operators."""
        httpx_mock.add_response(url=re.compile(r"https://www\.googleapis\.com/.*"), json={})

        result = await _search(
            GoogleSearchAdapter(),
            self.CREDENTIALS,
            query="asyncio",
            include_domains=["python.org", "realpython.com"],
            exclude_domains=["w3schools.com"],
        )

        params = httpx_mock.get_requests()[0].url.params
        assert params["q"] == (
            "asyncio site:python.org OR site:realpython.com -site:w3schools.com"
        )
        assert "siteSearch" not in params
        assert result.count == 0


# ==============================================================================
# Reddit
# ==============================================================================


class TestRedditSearch:
    """Tests for RedditSearchAdapter."""

    CREDENTIALS = {
        "REDDIT_CLIENT_ID": "client",
        "REDDIT_CLIENT_SECRET": "secret",
        "REDDIT_USER_AGENT": "omnisearch-tests/1.0",
    }

    @pytest.mark.anyio
    async def test_token_then_search(self, httpx_mock):
        """Test the OAuth token is fetched and used for the search."""
        httpx_mock.add_response(
            method="POST",
            url="https://www.reddit.com/api/v1/access_token",
            json={"access_token": "tok", "token_type": "bearer"},
        )
        httpx_mock.add_response(
            method="GET",
            url=re.compile(r"https://oauth\.reddit\.com/search\?.*"),
            json={
                "data": {
                    "children": [
                        {
                            "data": {
                                "title": "Asyncio tips",
                                "permalink": "/r/Python/comments/abc/asyncio_tips/",
                                "selftext": "Use TaskGroup",
                                "score": 321,
                                "created_utc": 1700000000.0,
                            }
                        },
                        {"data": {"title": "no permalink"}},
                    ]
                }
            },
        )

        result = await _search(RedditSearchAdapter(), self.CREDENTIALS, query="asyncio")

        token_request, search_request = httpx_mock.get_requests()
        assert token_request.headers["User-Agent"] == "omnisearch-tests/1.0"
        assert token_request.headers["Authorization"].startswith("Basic ")
        assert search_request.headers["Authorization"] == "Bearer tok"
        hit = result.hits[0]
        assert hit.url == "https://www.reddit.com/r/Python/comments/abc/asyncio_tips/"
        assert hit.score == 321
        assert hit.published_date.startswith("2023-11-14")
        assert result.count == 1

    @pytest.mark.anyio
    async def test_token_error_body(self, httpx_mock):
        """Test a token error reported with 200 is an authentication failure."""
        httpx_mock.add_response(
            method="POST",
            url="https://www.reddit.com/api/v1/access_token",
            json={"error": "invalid_grant"},
        )

        with pytest.raises(ProviderAuthenticationError, match="invalid_grant"):
            await _search(RedditSearchAdapter(), self.CREDENTIALS, query="q")


# ==============================================================================
# Baidu
# ==============================================================================


class TestBaiduSearch:
    """Tests for BaiduSearchAdapter."""

    URL = re.compile(r"https://serpapi\.com/search\.json\?.*")

    @pytest.mark.anyio
    async def test_search(self, httpx_mock):
        """Test organic results are mapped."""
        httpx_mock.add_response(
            url=self.URL,
            json={
                "organic_results": [
                    {"title": "百度百科", "link": "https://baike.baidu.com/item/x", "snippet": "摘要"}
                ]
            },
        )

        result = await _search(BaiduSearchAdapter(), {"SERPAPI_API_KEY": "serp"}, query="人工智能")

        params = httpx_mock.get_requests()[0].url.params
        assert params["engine"] == "baidu"
        assert params["api_key"] == "serp"
        assert result.hits[0].title == "百度百科"

    @pytest.mark.anyio
    async def test_body_error_invalid_key(self, httpx_mock):
        """Test key errors in the body are authentication failures."""
        httpx_mock.add_response(url=self.URL, json={"error": "Invalid API key."})

        with pytest.raises(ProviderAuthenticationError):
            await _search(BaiduSearchAdapter(), {"SERPAPI_API_KEY": "bad"}, query="q")

    @pytest.mark.anyio
    async def test_body_error_no_results(self, httpx_mock):
        """Test an empty result set is not an error."""
        httpx_mock.add_response(
            url=self.URL, json={"error": "Baidu hasn't returned any results for this query."}
        )

        result = await _search(BaiduSearchAdapter(), {"SERPAPI_API_KEY": "k"}, query="q")

        assert result.count == 0

    @pytest.mark.anyio
    async def test_body_error_other(self, httpx_mock):
        """Test other body errors are upstream failures."""
        httpx_mock.add_response(url=self.URL, json={"error": "Internal error"})

        with pytest.raises(ProviderUpstreamError):
            await _search(BaiduSearchAdapter(), {"SERPAPI_API_KEY": "k"}, query="q")


# ==============================================================================
# Bright Data
# ==============================================================================


class TestBrightDataSearch:
    """Tests for BrightDataSearchAdapter."""

    URL = re.compile(r"https://api\.brightdata\.com/serp/search\?.*")
    CREDENTIALS = {"BRIGHTDATA_USERNAME": "user", "BRIGHTDATA_PASSWORD": "secret"}

    @pytest.mark.anyio
    async def test_search(self, httpx_mock):
        """Test basic auth, domain filters and result mapping."""
        httpx_mock.add_response(
            url=self.URL,
            json={
                "results": [
                    {"title": "Rust", "url": "https://rust-lang.org", "description": "A language"},
                    {"title": "No link", "url": "", "description": "dropped"},
                ]
            },
        )

        result = await _search(
            BrightDataSearchAdapter(),
            self.CREDENTIALS,
            query="rust",
            include_domains=["rust-lang.org", "docs.rs"],
            exclude_domains=["reddit.com"],
        )

        request = httpx_mock.get_requests()[0]
        expected = base64.b64encode(b"user:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.url.params["q"] == "rust"
        assert request.url.params["limit"] == "5"
        assert request.url.params["include_domains"] == "rust-lang.org,docs.rs"
        assert request.url.params["exclude_domains"] == "reddit.com"
        assert [hit.url for hit in result.hits] == ["https://rust-lang.org"]
        assert result.hits[0].snippet == "A language"

    @pytest.mark.anyio
    async def test_invalid_credentials(self, httpx_mock):
        """Test a 401 is an authentication failure."""
        httpx_mock.add_response(url=self.URL, status_code=401, text="Unauthorized")

        with pytest.raises(ProviderAuthenticationError):
            await _search(BrightDataSearchAdapter(), self.CREDENTIALS, query="q")

    @pytest.mark.anyio
    async def test_non_list_results(self, httpx_mock):
        """Test a malformed results field is a response error."""
        httpx_mock.add_response(url=self.URL, json={"results": "none"})

        with pytest.raises(ProviderResponseError):
            await _search(BrightDataSearchAdapter(), self.CREDENTIALS, query="q")


# ==============================================================================
# DuckDuckGo
# ==============================================================================


class _FakeDDGS:
    """Stand-in for duckduckgo_search.DDGS recording its calls."""

    calls: list[dict] = []
    results: list[dict] | Exception = []

    def __init__(self, timeout: int = 10) -> None:
        self.timeout = timeout

    def text(self, query, region, safesearch, max_results):
        type(self).calls.append(
            {
                "query": query,
                "region": region,
                "safesearch": safesearch,
                "max_results": max_results,
                "timeout": self.timeout,
            }
        )
        if isinstance(self.results, Exception):
            raise self.results
        return self.results


@pytest.fixture
def fake_ddgs():
    _FakeDDGS.calls = []
    _FakeDDGS.results = []
    return _FakeDDGS


class TestDuckDuckGoSearch:
    """Tests for DuckDuckGoSearchAdapter."""

    @pytest.mark.anyio
    async def test_search(self, fake_ddgs):
        """Test results are mapped from title, href and body."""
        fake_ddgs.results = [
            {"title": "Python", "href": "https://www.python.org", "body": "Official"},
            {"title": "broken", "body": "no href"},
        ]

        result = await _search(
            DuckDuckGoSearchAdapter(ddgs_factory=fake_ddgs), {}, query="python", limit=5
        )

        assert result.count == 1
        assert fake_ddgs.calls == [
            {
                "query": "python",
                "region": "wt-wt",
                "safesearch": "moderate",
                "max_results": 5,
                "timeout": 10,
            }
        ]

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("exc", "error_type"),
        [
            (RatelimitException("202 Ratelimit"), ProviderRateLimitError),
            (TimeoutException("timed out"), ProviderTimeoutError),
            (DuckDuckGoSearchException("boom"), ProviderUpstreamError),
        ],
    )
    async def test_library_errors_mapped(self, fake_ddgs, exc, error_type):
        """Test library exceptions become adapter errors."""
        fake_ddgs.results = exc

        with pytest.raises(error_type):
            await _search(DuckDuckGoSearchAdapter(ddgs_factory=fake_ddgs), {}, query="q")
