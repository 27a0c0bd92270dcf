"""Kagi adapters - premium search, FastGPT answers, summarizer and enrichment.

All Kagi endpoints share one key (``KAGI_API_KEY``) sent as
``Authorization: Bot <key>`` and wrap their result in a ``data`` field.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderResponseError
from ._http import DEFAULT_LIMIT, HttpProviderAdapter, expect_list, expect_mapping, search_hit

logger = get_logger("providers.kagi")

KAGI_API_BASE = "https://kagi.com/api/v0"

# Kagi marks organic results with t == 0 and related searches with t == 1
_RESULT_TYPE = 0


def _auth(credentials: Mapping[str, str]) -> dict[str, str]:
    return {"Authorization": f"Bot {credentials['KAGI_API_KEY']}"}


def _references(items: list[Any]) -> list[dict[str, Any]]:
    return [
        {"url": item["url"], "title": item.get("title")}
        for item in items
        if isinstance(item, dict) and item.get("url")
    ]


class KagiSearchAdapter(HttpProviderAdapter):
    """Kagi web search."""

    identity = "kagi"
    capability = Capability.SEARCH
    base_url = KAGI_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Kagi search: %s", query[:100])

        data = await self._json(
            "GET",
            f"{self.base_url}/search",
            timeout,
            params={"q": query, "limit": parameters.get("limit", DEFAULT_LIMIT)},
            headers=_auth(credentials),
        )

        hits = [
            search_hit(
                item.get("title"),
                item.get("url"),
                item.get("snippet"),
                published_date=item.get("published"),
            )
            for item in expect_list(data, "data", self.identity)
            if isinstance(item, dict) and item.get("t") == _RESULT_TYPE and item.get("url")
        ]
        logger.info("Kagi returned %d results", len(hits))
        return {"hits": hits}


class KagiFastGPTAdapter(HttpProviderAdapter):
    """Kagi FastGPT: quick answers grounded in web search."""

    identity = "kagi_fastgpt"
    capability = Capability.ANSWER
    base_url = KAGI_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        data = await self._json(
            "POST",
            f"{self.base_url}/fastgpt",
            timeout,
            json={"query": parameters["query"]},
            headers=_auth(credentials),
        )
        body = expect_mapping(data, self.identity, "data")
        return {
            "text": body.get("output"),
            "citations": _references(body.get("references") or []),
        }


class KagiSummarizerAdapter(HttpProviderAdapter):
    """Kagi Universal Summarizer over one URL."""

    identity = "kagi_summarizer"
    capability = Capability.EXTRACT
    base_url = KAGI_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        url = parameters["urls"][0]
        logger.info("Kagi summarize: %s", url)

        data = await self._json(
            "POST",
            f"{self.base_url}/summarize",
            timeout,
            json={
                "url": url,
                "engine": parameters.get("engine", "cecil"),
                "summary_type": parameters.get("summary_type", "summary"),
            },
            headers=_auth(credentials),
        )
        body = expect_mapping(data, self.identity, "data")
        return {"url": url, "content": body.get("output"), "format": "markdown"}


class KagiEnrichmentAdapter(HttpProviderAdapter):
    """Kagi enrichment: results from Kagi's non-commercial web index."""

    identity = "kagi_enrichment"
    capability = Capability.ENRICH
    base_url = KAGI_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        subject = parameters.get("query") or parameters.get("content", "")
        index = parameters.get("index", "web")
        if index not in ("web", "news"):
            index = "web"

        data = await self._json(
            "GET",
            f"{self.base_url}/enrich/{index}",
            timeout,
            params={"q": subject[:1000]},
            headers=_auth(credentials),
        )

        items = [
            item
            for item in expect_list(data, "data", self.identity)
            if isinstance(item, dict) and item.get("t") == _RESULT_TYPE and item.get("url")
        ]
        if not items:
            raise ProviderResponseError(
                "Kagi enrichment returned no results", provider=self.identity
            )
        return {
            "subject": subject,
            "facts": {
                "index": index,
                "result_count": len(items),
                "titles": [item.get("title") or item["url"] for item in items],
                "snippets": [" ".join((item.get("snippet") or "").split()) for item in items],
            },
            "sources": _references(items),
        }
