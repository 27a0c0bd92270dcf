"""Jina AI adapters - Reader (URL to markdown) and Grounding (fact checking)."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderResponseError
from ._http import HttpProviderAdapter, document_payload, expect_mapping

logger = get_logger("providers.jina")

JINA_READER_URL = "https://r.jina.ai/"
JINA_GROUNDING_URL = "https://g.jina.ai"


def _auth(credentials: Mapping[str, str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {credentials['JINA_AI_API_KEY']}"}


class JinaReaderAdapter(HttpProviderAdapter):
    """Jina Reader: clean markdown from any URL.

    Several URLs are read concurrently and combined into one document with
    one segment per URL.
    """

    identity = "jina_reader"
    capability = Capability.EXTRACT
    base_url = JINA_READER_URL

    async def _read(
        self, url: str, credentials: Mapping[str, str], timeout: float
    ) -> dict[str, Any]:
        data = await self._json(
            "POST",
            self.base_url,
            timeout,
            json={"url": url},
            headers={**_auth(credentials), "X-Return-Format": "markdown"},
        )
        body = expect_mapping(data, self.identity, "data")
        content = body.get("content")
        if not content:
            raise ProviderResponseError(
                f"Jina Reader returned no content for {url}", provider=self.identity
            )
        return {"url": body.get("url") or url, "title": body.get("title"), "content": content}

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        urls = list(parameters["urls"])
        logger.info("Jina Reader: %d URLs", len(urls))
        pages = await asyncio.gather(*(self._read(url, credentials, timeout) for url in urls))
        return document_payload(list(pages))


class JinaGroundingAdapter(HttpProviderAdapter):
    """Jina Grounding: verify a statement against web sources."""

    identity = "jina_grounding"
    capability = Capability.ENRICH
    base_url = JINA_GROUNDING_URL

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        statement = parameters.get("content") or parameters.get("query", "")
        logger.info("Jina grounding: %s", statement[:100])

        data = await self._json(
            "POST",
            self.base_url,
            timeout,
            json={"statement": statement},
            headers=_auth(credentials),
        )
        body = expect_mapping(data, self.identity, "data")

        references = [ref for ref in body.get("references") or [] if isinstance(ref, dict)]
        facts: dict[str, Any] = {
            "factuality": body.get("factuality"),
            "result": body.get("result"),
            "reason": body.get("reason"),
            "supporting_quotes": [
                ref.get("keyQuote")
                for ref in references
                if ref.get("isSupportive") and ref.get("keyQuote")
            ],
            "contradicting_quotes": [
                ref.get("keyQuote")
                for ref in references
                if not ref.get("isSupportive") and ref.get("keyQuote")
            ],
        }
        return {
            "subject": statement,
            "facts": {key: value for key, value in facts.items() if value is not None},
            "sources": [{"url": ref["url"]} for ref in references if ref.get("url")],
        }
