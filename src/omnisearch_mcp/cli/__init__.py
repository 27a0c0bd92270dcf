"""CLI module for Omnisearch MCP."""

from __future__ import annotations

from collections.abc import Sequence

from .commands import cmd_call, cmd_config, cmd_health, cmd_providers, cmd_serve
from .parser import build_parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point.

    Args:
        argv: Optional sequence of CLI arguments (without the program name).

    Returns:
        Process exit code. 0 for success.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        raise SystemExit(0)

    handlers = {
        "serve": cmd_serve,
        "providers": cmd_providers,
        "call": cmd_call,
        "config": cmd_config,
        "health": cmd_health,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


__all__ = [
    "build_parser",
    "cmd_call",
    "cmd_config",
    "cmd_health",
    "cmd_providers",
    "cmd_serve",
    "main",
]
