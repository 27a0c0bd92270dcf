"""Exa adapters - neural search and cited answers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ._http import DEFAULT_LIMIT, HttpProviderAdapter, expect_list, expect_mapping, search_hit

logger = get_logger("providers.exa")

EXA_API_BASE = "https://api.exa.ai"


def _headers(credentials: Mapping[str, str]) -> dict[str, str]:
    return {"x-api-key": credentials["EXA_API_KEY"]}


class ExaSearchAdapter(HttpProviderAdapter):
    """Exa search.

    Options: ``search_type`` (auto, neural or keyword), ``category``.
    """

    identity = "exa"
    capability = Capability.SEARCH
    base_url = EXA_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Exa search: %s", query[:100])

        payload: dict[str, Any] = {
            "query": query,
            "numResults": parameters.get("limit", DEFAULT_LIMIT),
            "type": parameters.get("search_type", "auto"),
            "contents": {"text": {"maxCharacters": 1000}},
        }
        if parameters.get("category"):
            payload["category"] = parameters["category"]
        if parameters.get("include_domains"):
            payload["includeDomains"] = list(parameters["include_domains"])
        if parameters.get("exclude_domains"):
            payload["excludeDomains"] = list(parameters["exclude_domains"])

        data = await self._json(
            "POST", f"{self.base_url}/search", timeout, json=payload, headers=_headers(credentials)
        )

        hits = [
            search_hit(
                item.get("title") or item.get("url"),
                item.get("url"),
                item.get("text") or item.get("summary"),
                score=item.get("score"),
                published_date=item.get("publishedDate"),
            )
            for item in expect_list(data, "results", self.identity)
            if isinstance(item, dict) and item.get("url")
        ]
        logger.info("Exa returned %d results", len(hits))
        return {"hits": hits}


class ExaAnswerAdapter(HttpProviderAdapter):
    """Exa answer: an LLM answer with the pages it cites."""

    identity = "exa_answer"
    capability = Capability.ANSWER
    base_url = EXA_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        data = await self._json(
            "POST",
            f"{self.base_url}/answer",
            timeout,
            json={"query": parameters["query"], "text": False},
            headers=_headers(credentials),
        )
        body = expect_mapping(data, self.identity)
        citations = [
            {"url": item["url"], "title": item.get("title")}
            for item in expect_list(body, "citations", self.identity)
            if isinstance(item, dict) and item.get("url")
        ]
        return {"text": body.get("answer"), "citations": citations}
