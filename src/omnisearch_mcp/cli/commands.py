"""CLI command handlers."""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..app import create_dispatcher
from ..core.config import OmnisearchConfig
from ..core.logger import get_logger, log_exception, setup_logging
from ..orchestration.base import Capability, ToolCall
from ..orchestration.health import HealthChecker, ServiceStatus
from ..server import list_providers_payload, run_server

logger = get_logger("cli")


def _load_config(args: argparse.Namespace, console: Console) -> OmnisearchConfig | None:
    try:
        config = OmnisearchConfig.load(args.config)
    except FileNotFoundError as exc:
        console.print(f"[red]Error: {exc}[/]")
        return None
    except (ValidationError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[red]Invalid configuration:[/]\n{exc}")
        return None

    if getattr(args, "debug", False):
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    return config


def _parse_value(raw: str) -> Any:
    """Interpret a KEY=VALUE value as JSON when possible, else as text."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _parse_params(pairs: list[str]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got: {pair!r}")
        params[key.strip()] = _parse_value(value)
    return params


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle serve command."""
    # stdout belongs to the MCP stdio transport
    console = Console(stderr=True)
    config = _load_config(args, console)
    if config is None:
        return 1

    server_config = config.server.model_copy(
        update={
            key: value
            for key, value in (
                ("transport", args.transport),
                ("host", args.host),
                ("port", args.port),
            )
            if value is not None
        }
    )
    dispatcher = create_dispatcher(config)
    try:
        run_server(dispatcher, server_config)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except Exception as exc:
        log_exception(logger, exc, "MCP server failed")
        return 1
    return 0


def cmd_providers(args: argparse.Namespace) -> int:
    """Handle providers command."""
    console = Console()
    config = _load_config(args, console)
    if config is None:
        return 1

    payload = list_providers_payload(create_dispatcher(config))
    providers = payload["providers"]
    if args.capability:
        providers = [p for p in providers if p["capability"] == args.capability]

    if args.json:
        console.print_json(data=providers)
        return 0

    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Capability", style="magenta")
    table.add_column("Status")
    table.add_column("Missing credentials")
    for provider in providers:
        status = "[green]Enabled[/]" if provider["enabled"] else "[red]Disabled[/]"
        table.add_row(
            provider["name"],
            provider["capability"],
            status,
            ", ".join(provider["missing_credentials"]) or "-",
        )
    console.print(table)

    enabled = sum(1 for p in providers if p["enabled"])
    console.print(f"\n[bold]{enabled}[/] of [bold]{len(providers)}[/] providers enabled")
    return 0


def cmd_call(args: argparse.Namespace) -> int:
    """Handle call command."""
    console = Console()
    config = _load_config(args, console)
    if config is None:
        return 1

    try:
        parameters = _parse_params(args.params)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/]")
        return 1

    capability = Capability(args.capability)
    if args.query is not None:
        parameters.setdefault("query", args.query)
    if args.urls:
        parameters["urls"] = args.urls

    try:
        call = ToolCall(
            capability=capability,
            provider=args.provider,
            parameters=parameters,
            deadline_seconds=args.deadline,
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid call:[/]\n{exc}")
        return 1

    async def _run() -> dict[str, Any]:
        dispatcher = create_dispatcher(config)
        try:
            outcome = await dispatcher.handle(call)
        finally:
            await dispatcher.close()
        return outcome.to_payload()

    payload = asyncio.run(_run())
    console.print_json(data=payload)
    return 0 if payload["ok"] else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle config command."""
    console = Console()
    config = _load_config(args, console)
    if config is None:
        return 1

    data = config.model_dump(mode="json")
    if args.format == "json":
        console.print_json(data=data)
    else:
        console.print(yaml.safe_dump(data, sort_keys=False), end="", markup=False, highlight=False)
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    """Handle health command."""
    console = Console()
    config = _load_config(args, console)
    if config is None:
        return 1

    async def _run() -> dict[str, Any]:
        dispatcher = create_dispatcher(config)
        checker = HealthChecker(dispatcher, version=__version__)
        try:
            if args.readiness:
                return checker.check_readiness()
            return await checker.check_health()
        finally:
            await dispatcher.close()

    report = asyncio.run(_run())
    if args.readiness:
        console.print_json(data=report)
        return 0 if report["ready"] else 1

    if args.json:
        console.print_json(data=report)
    else:
        colors = {"pass": "green", "warn": "yellow", "fail": "red"}
        table = Table(title=f"Health: {report['status']}")
        table.add_column("Check", style="cyan")
        table.add_column("Status")
        table.add_column("Message")
        for name, check in report["checks"].items():
            color = colors[check["status"]]
            table.add_row(name, f"[{color}]{check['status']}[/]", check["message"] or "-")
        console.print(table)
    return 1 if report["status"] == ServiceStatus.UNHEALTHY.value else 0
