"""Omnisearch MCP.

One MCP tool endpoint over many third-party search, AI-answer, content
extraction and enrichment services, with:
- Credential-driven provider enablement
- Deterministic provider routing by capability
- Timeouts, retries with backoff, concurrency and rate limits
- Canonical result shapes and a classified error taxonomy
- Optional result caching (in-memory or Redis)

Example:
    ```python
    import asyncio

    from omnisearch_mcp import Capability, ToolCall, create_dispatcher

    dispatcher = create_dispatcher()
    outcome = asyncio.run(
        dispatcher.handle(ToolCall(capability=Capability.SEARCH, parameters={"query": "mcp"}))
    )
    print(outcome.to_payload())
    ```
"""

from importlib.metadata import PackageNotFoundError, version

from .app import create_dispatcher
from .core import OmnisearchConfig, get_logger, setup_logging
from .orchestration import (
    Capability,
    ClassifiedError,
    Dispatcher,
    ErrorKind,
    InvocationOutcome,
    ToolCall,
)

__all__ = [
    "__version__",
    "Capability",
    "ClassifiedError",
    "Dispatcher",
    "ErrorKind",
    "InvocationOutcome",
    "OmnisearchConfig",
    "ToolCall",
    "create_dispatcher",
    "get_logger",
    "setup_logging",
]

try:  # pragma: no cover - best-effort during development
    __version__ = version("omnisearch-mcp")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
