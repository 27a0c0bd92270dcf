"""Static provider catalog.

Every known provider is declared here once, with its descriptor and the
adapter class implementing it. Order within a capability is the fallback
priority used when a call names no provider.
"""

from __future__ import annotations

from ..orchestration.base import Capability, ProviderAdapter, ProviderDescriptor
from .baidu import BaiduSearchAdapter
from .brave import BraveSearchAdapter
from .brightdata import BrightDataSearchAdapter
from .duckduckgo import DuckDuckGoSearchAdapter
from .exa import ExaAnswerAdapter, ExaSearchAdapter
from .firecrawl import FirecrawlScrapeAdapter
from .google import GoogleSearchAdapter
from .jina import JinaGroundingAdapter, JinaReaderAdapter
from .kagi import (
    KagiEnrichmentAdapter,
    KagiFastGPTAdapter,
    KagiSearchAdapter,
    KagiSummarizerAdapter,
)
from .perplexity import PerplexityAnswerAdapter
from .reddit import RedditSearchAdapter
from .tavily import TavilyExtractAdapter, TavilySearchAdapter

CatalogEntry = tuple[ProviderDescriptor, ProviderAdapter]


def _declare(
    adapter_cls: type[ProviderAdapter],
    capability: Capability,
    credentials: tuple[str, ...],
    description: str,
    priority: int,
    **limits: float | int | None,
) -> tuple[ProviderDescriptor, type[ProviderAdapter]]:
    descriptor = ProviderDescriptor(
        identity=adapter_cls.identity,
        capability=capability,
        required_credentials=credentials,
        description=description,
        priority=priority,
        **limits,
    )
    return descriptor, adapter_cls


PROVIDERS: tuple[tuple[ProviderDescriptor, type[ProviderAdapter]], ...] = (
    # search
    _declare(
        TavilySearchAdapter,
        Capability.SEARCH,
        ("TAVILY_API_KEY",),
        "AI-optimized web search with domain filtering",
        10,
    ),
    _declare(
        BraveSearchAdapter,
        Capability.SEARCH,
        ("BRAVE_API_KEY",),
        "Privacy-focused search from an independent index",
        20,
    ),
    _declare(
        KagiSearchAdapter,
        Capability.SEARCH,
        ("KAGI_API_KEY",),
        "High-quality ad-free search results",
        30,
    ),
    _declare(
        ExaSearchAdapter,
        Capability.SEARCH,
        ("EXA_API_KEY",),
        "Neural search over the web",
        40,
    ),
    _declare(
        GoogleSearchAdapter,
        Capability.SEARCH,
        ("GOOGLE_API_KEY", "GOOGLE_SEARCH_ENGINE_ID"),
        "Google Programmable Search",
        50,
    ),
    _declare(
        RedditSearchAdapter,
        Capability.SEARCH,
        ("REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "REDDIT_USER_AGENT"),
        "Reddit posts and discussions",
        60,
        requests_per_minute=60,
    ),
    _declare(
        BaiduSearchAdapter,
        Capability.SEARCH,
        ("SERPAPI_API_KEY",),
        "Baidu search via SerpApi, strong on Chinese content",
        70,
    ),
    _declare(
        BrightDataSearchAdapter,
        Capability.SEARCH,
        ("BRIGHTDATA_USERNAME", "BRIGHTDATA_PASSWORD"),
        "Bright Data SERP API search with domain filtering",
        80,
    ),
    _declare(
        DuckDuckGoSearchAdapter,
        Capability.SEARCH,
        (),
        "Free DuckDuckGo search, no API key required",
        90,
        requests_per_minute=30,
    ),
    # answer
    _declare(
        PerplexityAnswerAdapter,
        Capability.ANSWER,
        ("PERPLEXITY_API_KEY",),
        "AI answers with web citations",
        10,
        timeout_seconds=60.0,
        requests_per_minute=60,
    ),
    _declare(
        KagiFastGPTAdapter,
        Capability.ANSWER,
        ("KAGI_API_KEY",),
        "Quick AI answers grounded in Kagi search",
        20,
    ),
    _declare(
        ExaAnswerAdapter,
        Capability.ANSWER,
        ("EXA_API_KEY",),
        "AI answers with cited Exa search results",
        30,
    ),
    # extract
    _declare(
        JinaReaderAdapter,
        Capability.EXTRACT,
        ("JINA_AI_API_KEY",),
        "Clean markdown from any URL",
        10,
    ),
    _declare(
        TavilyExtractAdapter,
        Capability.EXTRACT,
        ("TAVILY_API_KEY",),
        "Raw content extraction from web pages",
        20,
    ),
    _declare(
        FirecrawlScrapeAdapter,
        Capability.EXTRACT,
        ("FIRECRAWL_API_KEY",),
        "Rendered page scraping to markdown",
        30,
        timeout_seconds=120.0,
        requests_per_minute=60,
    ),
    _declare(
        KagiSummarizerAdapter,
        Capability.EXTRACT,
        ("KAGI_API_KEY",),
        "Summaries of pages, videos and documents",
        40,
    ),
    # enrich
    _declare(
        JinaGroundingAdapter,
        Capability.ENRICH,
        ("JINA_AI_API_KEY",),
        "Fact verification against web sources",
        10,
    ),
    _declare(
        KagiEnrichmentAdapter,
        Capability.ENRICH,
        ("KAGI_API_KEY",),
        "Supplementary results from Kagi's small-web index",
        20,
    ),
)


def provider_descriptors() -> list[ProviderDescriptor]:
    """Descriptors of every known provider, in declaration order."""
    return [descriptor for descriptor, _ in PROVIDERS]


def build_catalog() -> list[CatalogEntry]:
    """Instantiate one adapter per declared provider."""
    return [(descriptor, factory()) for descriptor, factory in PROVIDERS]
