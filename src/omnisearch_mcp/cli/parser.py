"""CLI argument parser."""

from __future__ import annotations

import argparse

from .. import __version__
from ..orchestration.base import Capability


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: environment only)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="omnisearch-mcp",
        description=(
            "Omnisearch MCP - one tool endpoint over many search, answer and extraction providers"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve MCP over stdio (for AI coding assistants)
  omnisearch-mcp serve

  # Serve over streamable HTTP
  omnisearch-mcp serve --transport streamable-http --port 8000

  # Show which providers are enabled
  omnisearch-mcp providers

  # Report provider, circuit breaker and cache health
  omnisearch-mcp health --json

  # One-shot search through a specific provider
  omnisearch-mcp call search "python asyncio timeouts" --provider tavily -p limit=5
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Show program's version number and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    _add_config_argument(serve_parser)
    serve_parser.add_argument(
        "-t",
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default=None,
        help="MCP transport (default: from configuration, stdio)",
    )
    serve_parser.add_argument("--host", default=None, help="Bind host for HTTP transports")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Bind port for HTTP transports"
    )
    serve_parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    # providers
    providers_parser = subparsers.add_parser(
        "providers", help="List known providers and their enabled state"
    )
    _add_config_argument(providers_parser)
    providers_parser.add_argument(
        "--capability",
        choices=[c.value for c in Capability],
        default=None,
        help="Only show providers of this capability",
    )
    providers_parser.add_argument(
        "--json", action="store_true", help="Print JSON instead of a table"
    )

    # call
    call_parser = subparsers.add_parser("call", help="Run one tool call and print the outcome")
    _add_config_argument(call_parser)
    call_parser.add_argument(
        "capability", choices=[c.value for c in Capability], help="Capability to invoke"
    )
    call_parser.add_argument(
        "query", nargs="?", default=None, help="Query text (search, answer, enrich)"
    )
    call_parser.add_argument("--provider", default=None, help="Explicit provider identity")
    call_parser.add_argument(
        "-u",
        "--url",
        action="append",
        dest="urls",
        default=None,
        help="URL to extract (repeatable)",
    )
    call_parser.add_argument(
        "-p",
        "--param",
        action="append",
        dest="params",
        default=[],
        metavar="KEY=VALUE",
        help="Extra parameter (repeatable)",
    )
    call_parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall deadline in seconds",
    )
    call_parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    # health
    health_parser = subparsers.add_parser("health", help="Check provider, breaker and cache health")
    _add_config_argument(health_parser)
    health_parser.add_argument(
        "--json", action="store_true", help="Print the JSON report instead of a table"
    )
    health_parser.add_argument(
        "--readiness", action="store_true", help="Only report whether calls can be served"
    )

    # config
    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    _add_config_argument(config_parser)
    config_parser.add_argument(
        "-f",
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )

    return parser
