"""Firecrawl scrape adapter - rendered page to markdown."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderResponseError, ProviderUpstreamError
from ._http import HttpProviderAdapter, document_payload, expect_mapping

logger = get_logger("providers.firecrawl")

FIRECRAWL_API_BASE = "https://api.firecrawl.dev/v1"


class FirecrawlScrapeAdapter(HttpProviderAdapter):
    """Firecrawl scrape of one or more URLs (one request per URL, in order)."""

    identity = "firecrawl_scrape"
    capability = Capability.EXTRACT
    base_url = FIRECRAWL_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        pages = []
        for url in parameters["urls"]:
            logger.info("Firecrawl scrape: %s", url)
            data = await self._json(
                "POST",
                f"{self.base_url}/scrape",
                timeout,
                json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
                headers={"Authorization": f"Bearer {credentials['FIRECRAWL_API_KEY']}"},
            )
            body = expect_mapping(data, self.identity)
            if body.get("success") is False:
                raise ProviderUpstreamError(
                    f"Firecrawl scrape failed: {body.get('error', 'unknown error')}",
                    provider=self.identity,
                )
            result = expect_mapping(body, self.identity, "data")
            markdown = result.get("markdown")
            if not markdown:
                raise ProviderResponseError(
                    f"Firecrawl returned no markdown for {url}", provider=self.identity
                )
            metadata = result.get("metadata") if isinstance(result.get("metadata"), dict) else {}
            pages.append(
                {
                    "url": metadata.get("sourceURL") or url,
                    "title": metadata.get("title"),
                    "content": markdown,
                }
            )
        return document_payload(pages)
