"""Bright Data SERP search adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ._http import HttpProviderAdapter, expect_list, search_hit

logger = get_logger("providers.brightdata")

BRIGHTDATA_SERP_URL = "https://api.brightdata.com/serp/search"
BRIGHTDATA_DEFAULT_LIMIT = 5


class BrightDataSearchAdapter(HttpProviderAdapter):
    """Web search through the Bright Data SERP API, authenticated with HTTP basic auth."""

    identity = "brightdata"
    capability = Capability.SEARCH
    base_url = BRIGHTDATA_SERP_URL

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Bright Data search: %s", query[:100])

        params: dict[str, Any] = {
            "q": query,
            "limit": parameters.get("limit", BRIGHTDATA_DEFAULT_LIMIT),
        }
        # Domain filters travel as comma-separated lists
        for key in ("include_domains", "exclude_domains"):
            domains = parameters.get(key) or []
            if domains:
                params[key] = ",".join(domains)

        data = await self._json(
            "GET",
            self.base_url,
            timeout,
            params=params,
            auth=(credentials["BRIGHTDATA_USERNAME"], credentials["BRIGHTDATA_PASSWORD"]),
        )

        hits = [
            search_hit(item.get("title"), item.get("url"), item.get("description"))
            for item in expect_list(data, "results", self.identity)
            if isinstance(item, dict) and item.get("url")
        ]
        logger.info("Bright Data returned %d results", len(hits))
        return {"hits": hits}
