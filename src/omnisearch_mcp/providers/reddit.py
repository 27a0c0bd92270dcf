"""Reddit search adapter (OAuth2 client-credentials flow)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from ..core.logger import get_logger
from ..orchestration.base import Capability
from ..orchestration.errors import ProviderAuthenticationError
from ._http import (
    DEFAULT_LIMIT,
    HttpProviderAdapter,
    expect_list,
    expect_mapping,
    parse_json,
    raise_for_provider_status,
    search_hit,
)

logger = get_logger("providers.reddit")

REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_API_BASE = "https://oauth.reddit.com"
REDDIT_WEB_BASE = "https://www.reddit.com"


class RedditSearchAdapter(HttpProviderAdapter):
    """Search Reddit posts.

    Each invocation fetches an app-only token and then searches; both
    requests share the attempt's timeout.
    """

    identity = "reddit"
    capability = Capability.SEARCH
    base_url = REDDIT_API_BASE

    async def call(
        self,
        parameters: Mapping[str, Any],
        credentials: Mapping[str, str],
        timeout: float,
    ) -> dict[str, Any]:
        query = parameters["query"]
        logger.info("Reddit search: %s", query[:100])
        user_agent = credentials["REDDIT_USER_AGENT"]

        async with httpx.AsyncClient(timeout=timeout, headers={"User-Agent": user_agent}) as client:
            token_response = await client.post(
                REDDIT_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(credentials["REDDIT_CLIENT_ID"], credentials["REDDIT_CLIENT_SECRET"]),
            )
            raise_for_provider_status(token_response, self.identity)
            token = expect_mapping(parse_json(token_response, self.identity), self.identity)
            access_token = token.get("access_token")
            if not access_token:
                # Reddit answers bad client credentials with 200 and an error body
                raise ProviderAuthenticationError(
                    f"reddit token request failed: {token.get('error', 'no access_token')}",
                    provider=self.identity,
                )

            response = await client.get(
                f"{self.base_url}/search",
                params={
                    "q": query,
                    "limit": min(parameters.get("limit", DEFAULT_LIMIT), 100),
                    "sort": parameters.get("sort", "relevance"),
                    "type": "link",
                },
                headers={"Authorization": f"Bearer {access_token}"},
            )
            raise_for_provider_status(response, self.identity)
            data = parse_json(response, self.identity)

        listing = expect_mapping(data, self.identity, "data")
        hits = []
        for child in expect_list(listing, "children", self.identity):
            post = child.get("data") if isinstance(child, dict) else None
            if not isinstance(post, dict) or not post.get("permalink"):
                continue
            created = post.get("created_utc")
            hits.append(
                search_hit(
                    post.get("title"),
                    f"{REDDIT_WEB_BASE}{post['permalink']}",
                    (post.get("selftext") or post.get("url") or "")[:500],
                    score=post.get("score"),
                    published_date=(
                        datetime.fromtimestamp(created, UTC).isoformat()
                        if isinstance(created, (int, float))
                        else None
                    ),
                )
            )
        logger.info("Reddit returned %d results", len(hits))
        return {"hits": hits}
