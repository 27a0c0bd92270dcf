"""Brave Search adapter - privacy-focused independent web index."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ._http import DEFAULT_LIMIT, HttpProviderAdapter, expect_list, expect_mapping, search_hit

logger = get_logger("providers.brave")

BRAVE_API_BASE = "https://api.search.brave.com/res/v1"


def _with_site_operators(query: str, parameters: Mapping[str, Any]) -> str:
    # Brave has no domain filter fields; fold them into the query
    parts = [query]
    parts.extend(f"site:{domain}" for domain in parameters.get("include_domains") or [])
    parts.extend(f"-site:{domain}" for domain in parameters.get("exclude_domains") or [])
    return " ".join(parts)


class BraveSearchAdapter(HttpProviderAdapter):
    """Brave web search.

    Options: ``country``, ``search_lang``, ``safesearch`` (off, moderate, strict).
    """

    identity = "brave"
    capability = Capability.SEARCH
    base_url = BRAVE_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = _with_site_operators(parameters["query"], parameters)
        logger.info("Brave search: %s", query[:100])

        params = {
            "q": query,
            "count": min(parameters.get("limit", DEFAULT_LIMIT), 20),
            "safesearch": parameters.get("safesearch", "moderate"),
        }
        for option in ("country", "search_lang"):
            if parameters.get(option):
                params[option] = parameters[option]

        data = await self._json(
            "GET",
            f"{self.base_url}/web/search",
            timeout,
            params=params,
            headers={"X-Subscription-Token": credentials["BRAVE_API_KEY"]},
        )

        web = expect_mapping(data, self.identity).get("web") or {}
        results = expect_list(web, "results", self.identity)
        hits = [
            search_hit(
                item.get("title"),
                item.get("url"),
                item.get("description"),
                published_date=item.get("page_age") or item.get("age"),
            )
            for item in results
            if isinstance(item, dict) and item.get("url")
        ]
        logger.info("Brave returned %d results", len(hits))
        return {"hits": hits}
