"""Google Custom Search adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ._http import DEFAULT_LIMIT, HttpProviderAdapter, expect_list, search_hit

logger = get_logger("providers.google")

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"

# The Custom Search API returns at most 10 results per request
GOOGLE_MAX_RESULTS = 10


class GoogleSearchAdapter(HttpProviderAdapter):
    """Google Programmable Search (Custom Search JSON API)."""

    identity = "google"
    capability = Capability.SEARCH
    base_url = GOOGLE_CSE_URL

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Google search: %s", query[:100])

        params: dict[str, Any] = {
            "key": credentials["GOOGLE_API_KEY"],
            "cx": credentials["GOOGLE_SEARCH_ENGINE_ID"],
            "q": query,
            "num": min(parameters.get("limit", DEFAULT_LIMIT), GOOGLE_MAX_RESULTS),
        }
        include = parameters.get("include_domains") or []
        if len(include) == 1:
            params["siteSearch"] = include[0]
            params["siteSearchFilter"] = "i"
        elif include:
            params["q"] = f"{query} " + " OR ".join(f"site:{d}" for d in include)
        exclude = parameters.get("exclude_domains") or []
        if exclude:
            params["q"] = f"{params['q']} " + " ".join(f"-site:{d}" for d in exclude)

        data = await self._json("GET", self.base_url, timeout, params=params)

        hits = [
            search_hit(item.get("title"), item.get("link"), item.get("snippet"))
            for item in expect_list(data, "items", self.identity)
            if isinstance(item, dict) and item.get("link")
        ]
        logger.info("Google returned %d results", len(hits))
        return {"hits": hits}
