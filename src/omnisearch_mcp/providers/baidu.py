"""Baidu search adapter via SerpApi."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderAuthenticationError, ProviderUpstreamError
from ._http import DEFAULT_LIMIT, HttpProviderAdapter, expect_list, expect_mapping, search_hit

logger = get_logger("providers.baidu")

SERPAPI_SEARCH_URL = "https://serpapi.com/search.json"


class BaiduSearchAdapter(HttpProviderAdapter):
    """Baidu web search, useful for Chinese-language content."""

    identity = "baidu"
    capability = Capability.SEARCH
    base_url = SERPAPI_SEARCH_URL

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Baidu search: %s", query[:100])

        data = await self._json(
            "GET",
            self.base_url,
            timeout,
            params={
                "engine": "baidu",
                "q": query,
                "rn": min(parameters.get("limit", DEFAULT_LIMIT), 50),
                "api_key": credentials["SERPAPI_API_KEY"],
            },
        )

        body = expect_mapping(data, self.identity)
        error = body.get("error")
        if error:
            # SerpApi reports some failures in the body of a 200 response
            message = f"SerpApi error: {error}"
            if "api key" in str(error).lower():
                raise ProviderAuthenticationError(message, provider=self.identity)
            if "hasn't returned any results" not in str(error):
                raise ProviderUpstreamError(message, provider=self.identity)

        hits = [
            search_hit(item.get("title"), item.get("link"), item.get("snippet"))
            for item in expect_list(body, "organic_results", self.identity)
            if isinstance(item, dict) and item.get("link")
        ]
        logger.info("Baidu returned %d results", len(hits))
        return {"hits": hits}
