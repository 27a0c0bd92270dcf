"""Perplexity adapter - AI answers with web citations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderResponseError
from ._http import HttpProviderAdapter, expect_list

logger = get_logger("providers.perplexity")

PERPLEXITY_API_BASE = "https://api.perplexity.ai"
DEFAULT_MODEL = "sonar"
SYSTEM_PROMPT = "Be precise and concise. Cite your sources."


class PerplexityAnswerAdapter(HttpProviderAdapter):
    """Perplexity chat completions in answer mode.

    Options: ``model`` (default ``sonar``), ``search_recency_filter``.
    """

    identity = "perplexity"
    capability = Capability.ANSWER
    base_url = PERPLEXITY_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Perplexity answer: %s", query[:100])

        payload: dict[str, Any] = {
            "model": parameters.get("model", DEFAULT_MODEL),
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
        }
        if parameters.get("search_recency_filter"):
            payload["search_recency_filter"] = parameters["search_recency_filter"]
        if parameters.get("include_domains"):
            payload["search_domain_filter"] = list(parameters["include_domains"])

        data = await self._json(
            "POST",
            f"{self.base_url}/chat/completions",
            timeout,
            json=payload,
            headers={"Authorization": f"Bearer {credentials['PERPLEXITY_API_KEY']}"},
        )

        choices = expect_list(data, "choices", self.identity)
        if not choices or not isinstance(choices[0], dict):
            raise ProviderResponseError("Perplexity returned no choices", provider=self.identity)
        message = choices[0].get("message") or {}

        citations: list[dict[str, Any]] = []
        for item in expect_list(data, "search_results", self.identity):
            if isinstance(item, dict) and item.get("url"):
                citations.append({"url": item["url"], "title": item.get("title")})
        if not citations:
            citations = [
                {"url": url}
                for url in expect_list(data, "citations", self.identity)
                if isinstance(url, str)
            ]
        return {"text": message.get("content"), "citations": citations}
