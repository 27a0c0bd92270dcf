"""MCP tool surface over the dispatcher."""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from . import __version__
from .core.config import ServerConfig
from .core.logger import get_logger
from .orchestration.base import Capability, ToolCall
from .orchestration.dispatcher import Dispatcher
from .orchestration.health import HealthChecker

logger = get_logger("server")

_READ_ONLY = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": True,
}


def _params(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def list_providers_payload(dispatcher: Dispatcher) -> dict[str, Any]:
    """Describe every known provider and whether it is usable."""
    registry = dispatcher.registry
    providers = []
    for entry in registry.providers():
        descriptor = entry.descriptor
        providers.append(
            {
                "name": descriptor.identity,
                "capability": descriptor.capability.value,
                "enabled": registry.is_enabled(descriptor.identity),
                "description": descriptor.description,
                "missing_credentials": list(registry.enabled.missing_for(descriptor.identity)),
            }
        )
    return {
        "providers": providers,
        "enabled": {
            capability.value: registry.resolve_by_capability(capability)
            for capability in Capability
        },
    }


def create_server(dispatcher: Dispatcher, config: ServerConfig | None = None) -> FastMCP:
    """Build a FastMCP server exposing the orchestration tools.

    Args:
        dispatcher: Dispatcher handling every tool call
        config: Server settings

    Returns:
        Configured FastMCP instance (not yet running)
    """
    config = config or ServerConfig()
    mcp = FastMCP(config.name, host=config.host, port=config.port)
    health = HealthChecker(dispatcher, version=__version__)

    async def dispatch(
        capability: Capability, provider: str | None, **values: Any
    ) -> dict[str, Any]:
        call = ToolCall(capability=capability, provider=provider, parameters=_params(**values))
        outcome = await dispatcher.handle(call)
        return outcome.to_payload()

    @mcp.tool(name="web_search", annotations={"title": "Web Search", **_READ_ONLY})
    async def web_search(
        query: str,
        provider: str | None = None,
        limit: int | None = None,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
    ) -> dict[str, Any]:
        """Search the web.

        Uses the named provider, or the highest-priority enabled search
        provider when none is given. Call list_providers to see options.
        """
        return await dispatch(
            Capability.SEARCH,
            provider,
            query=query,
            limit=limit,
            include_domains=include_domains,
            exclude_domains=exclude_domains,
        )

    @mcp.tool(name="ai_answer", annotations={"title": "AI Answer", **_READ_ONLY})
    async def ai_answer(query: str, provider: str | None = None) -> dict[str, Any]:
        """Get an AI-generated answer with citations for a question."""
        return await dispatch(Capability.ANSWER, provider, query=query)

    @mcp.tool(name="extract_content", annotations={"title": "Extract Content", **_READ_ONLY})
    async def extract_content(
        url: str | None = None,
        urls: list[str] | None = None,
        provider: str | None = None,
    ) -> dict[str, Any]:
        """Extract readable content (markdown) from one or more URLs."""
        return await dispatch(Capability.EXTRACT, provider, url=url, urls=urls)

    @mcp.tool(
        name="enrich_content",
        annotations={
            "title": "Enrich Content",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True,
        },
    )
    async def enrich_content(
        query: str | None = None,
        content: str | None = None,
        provider: str | None = None,
    ) -> dict[str, Any]:
        """Enrich a topic or verify a statement with structured facts and sources."""
        return await dispatch(Capability.ENRICH, provider, query=query, content=content)

    @mcp.tool(name="list_providers", annotations={"title": "List Providers", **_READ_ONLY})
    async def list_providers() -> dict[str, Any]:
        """List every known provider, its capability and whether it is enabled."""
        return list_providers_payload(dispatcher)

    @mcp.tool(name="health_check", annotations={"title": "Health Check", **_READ_ONLY})
    async def health_check() -> dict[str, Any]:
        """Report service health: enabled providers, open circuit breakers and cache state."""
        return await health.check_health()

    logger.info("MCP server '%s' created", config.name)
    return mcp


def run_server(dispatcher: Dispatcher, config: ServerConfig | None = None) -> None:
    """Create the MCP server and block serving it on the configured transport."""
    config = config or ServerConfig()
    server = create_server(dispatcher, config)
    logger.info("Starting MCP server over %s", config.transport)
    server.run(transport=config.transport)
