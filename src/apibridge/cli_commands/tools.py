"""``apibridge tools`` — list and call the tools a configuration exposes."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.markup import escape

from apibridge.cli_commands._output import console, print_operations_table, print_result


@click.group()
def tools() -> None:
    """List and call tools."""


@tools.command("list")
@click.argument("config", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--allow-tools",
    "-t",
    default=None,
    help="Comma separated list of tool ids (or all). Overrides the configuration.",
)
def list_tools(config: str, allow_tools: str | None) -> None:
    """List the tools CONFIG would register."""
    from apibridge.config import ConfigLoader
    from apibridge.errors import BridgeError
    from apibridge.openapi.loader import load_description
    from apibridge.tools.filter import ToolFilter

    loader = ConfigLoader(Path(config))
    try:
        settings = loader.load()
        tool_filter = ToolFilter.parse(allow_tools) if allow_tools else settings.tool_filter()
        operations = []
        for ref in settings.descriptions:
            path = Path(ref.path)
            if not path.is_absolute():
                path = loader.base_dir / path
            description = load_description(path)
            operations.extend(
                op for op in description.operations if tool_filter.is_allowed(op.operation_id)
            )
    except BridgeError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)

    if not operations:
        console.print("[yellow]No tools allowed by the filter.[/yellow]")
        return

    print_operations_table(operations)


@tools.command("call")
@click.argument("config", type=click.Path(exists=True, dir_okay=False))
@click.argument("operation")
@click.option("--args", "args_json", default="{}", help="Tool arguments as a JSON object.")
def call(config: str, operation: str, args_json: str) -> None:
    """Invoke OPERATION with the credentials configured in CONFIG."""
    from apibridge.bootstrap import build_registry
    from apibridge.config import ConfigLoader
    from apibridge.errors import BridgeError, InvocationError
    from apibridge.utils.telemetry import configure_telemetry

    try:
        arguments = json.loads(args_json)
    except ValueError as exc:
        console.print(f"[red]Invalid --args:[/red] {escape(str(exc))}")
        sys.exit(1)

    loader = ConfigLoader(Path(config))
    try:
        settings = loader.load()
        if settings.telemetry is not None and settings.telemetry.enabled:
            configure_telemetry(otlp_endpoint=settings.telemetry.otlp_endpoint)
        registry = build_registry(settings, base_dir=loader.base_dir)
    except BridgeError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)

    try:
        result = asyncio.run(registry.execute_tool(operation, arguments))
    except InvocationError as exc:
        console.print(f"[red]Invocation error:[/red] {escape(str(exc))}")
        sys.exit(1)
    except BridgeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    print_result(result)
