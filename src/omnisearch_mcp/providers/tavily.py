"""Tavily adapters - AI-optimized search and URL content extraction.

Tavily API supports:
- search: AI-optimized web search with domain filters
- extract: Extract raw content from up to 20 URLs
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderResponseError
from ._http import (
    DEFAULT_LIMIT,
    HttpProviderAdapter,
    document_payload,
    expect_list,
    search_hit,
)

logger = get_logger("providers.tavily")

TAVILY_API_BASE = "https://api.tavily.com"


class TavilySearchAdapter(HttpProviderAdapter):
    """Tavily web search.

    Options: ``search_depth`` (basic or advanced), ``topic``,
    ``include_domains``, ``exclude_domains``.
    """

    identity = "tavily"
    capability = Capability.SEARCH
    base_url = TAVILY_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Tavily search: %s", query[:100])

        payload: dict[str, Any] = {
            "query": query,
            "max_results": parameters.get("limit", DEFAULT_LIMIT),
            "search_depth": parameters.get("search_depth", "basic"),
            "topic": parameters.get("topic", "general"),
            "include_answer": False,
        }
        if parameters.get("include_domains"):
            payload["include_domains"] = list(parameters["include_domains"])
        if parameters.get("exclude_domains"):
            payload["exclude_domains"] = list(parameters["exclude_domains"])

        data = await self._json(
            "POST",
            f"{self.base_url}/search",
            timeout,
            json=payload,
            headers={"Authorization": f"Bearer {credentials['TAVILY_API_KEY']}"},
        )

        hits = [
            search_hit(
                item.get("title"),
                item.get("url"),
                item.get("content"),
                score=item.get("score"),
                published_date=item.get("published_date"),
            )
            for item in expect_list(data, "results", self.identity)
            if isinstance(item, dict) and item.get("url")
        ]
        logger.info("Tavily returned %d results", len(hits))
        return {"hits": hits}


class TavilyExtractAdapter(HttpProviderAdapter):
    """Tavily URL content extraction."""

    identity = "tavily_extract"
    capability = Capability.EXTRACT
    base_url = TAVILY_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        urls = list(parameters["urls"])
        logger.info("Tavily extract: %d URLs", len(urls))

        data = await self._json(
            "POST",
            f"{self.base_url}/extract",
            timeout,
            json={
                "urls": urls[:20],
                "extract_depth": parameters.get("extract_depth", "basic"),
            },
            headers={"Authorization": f"Bearer {credentials['TAVILY_API_KEY']}"},
        )

        pages = [
            {"url": item.get("url"), "content": item.get("raw_content")}
            for item in expect_list(data, "results", self.identity)
            if isinstance(item, dict) and item.get("raw_content")
        ]
        if not pages:
            failed = expect_list(data, "failed_results", self.identity)
            raise ProviderResponseError(
                f"Tavily extracted no content ({len(failed)} URL(s) failed)",
                provider=self.identity,
            )
        return document_payload(pages)
