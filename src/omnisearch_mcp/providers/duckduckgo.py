"""DuckDuckGo search adapter - free, no API key required."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from duckduckgo_search import DDGS
from duckduckgo_search.exceptions import (
    DuckDuckGoSearchException,
    RatelimitException,
    TimeoutException,
)

from ..core.logger import get_logger
from ..orchestration.base import Capability, ProviderAdapter, RawResult
from ..orchestration.errors import (
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUpstreamError,
)
from ._http import DEFAULT_LIMIT, search_hit

logger = get_logger("providers.duckduckgo")


class DuckDuckGoSearchAdapter(ProviderAdapter):
    """DuckDuckGo search.

    The ``duckduckgo_search`` client is synchronous, so each call runs in
    the default executor.
    """

    identity = "duckduckgo"
    capability = Capability.SEARCH

    def __init__(self, ddgs_factory: Any = DDGS) -> None:
        self._ddgs_factory = ddgs_factory

    def _search(self, query: str, max_results: int, region: str, safesearch: str, timeout: float):
        return self._ddgs_factory(timeout=int(max(1, timeout))).text(
            query,
            region=region,
            safesearch=safesearch,
            max_results=max_results,
        )

    async def invoke(
        self,
        capability: Capability,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> RawResult:
        query = parameters["query"]
        logger.info("DuckDuckGo search: %s", query[:100])

        region = parameters.get("region", "wt-wt")
        safesearch = parameters.get("safesearch", "moderate")
        limit = parameters.get("limit", DEFAULT_LIMIT)

        loop = asyncio.get_running_loop()
        try:
            results = await loop.run_in_executor(
                None, self._search, query, limit, region, safesearch, timeout
            )
        except RatelimitException as exc:
            raise ProviderRateLimitError(
                f"DuckDuckGo rate limit exceeded: {exc}", provider=self.identity
            ) from exc
        except TimeoutException as exc:
            raise ProviderTimeoutError(
                f"DuckDuckGo timed out: {exc}", provider=self.identity
            ) from exc
        except DuckDuckGoSearchException as exc:
            raise ProviderUpstreamError(
                f"DuckDuckGo search failed: {exc}", provider=self.identity
            ) from exc

        hits = [
            search_hit(item.get("title"), item.get("href"), item.get("body"))
            for item in results or []
            if isinstance(item, dict) and item.get("href")
        ]
        logger.info("DuckDuckGo returned %d results", len(hits))
        return RawResult(
            payload={"hits": hits},
            metadata={"provider": self.identity, "region": region, "safesearch": safesearch},
        )
