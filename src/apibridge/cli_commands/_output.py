"""Shared CLI output formatters."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from apibridge.gateway.models import ToolResult  # noqa: TC001
from apibridge.openapi.models import Operation  # noqa: TC001

console = Console()


def print_operations_table(operations: list[Operation], *, title: str = "Tools") -> None:
    """Pretty-print the operations that would be exposed as tools."""
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Method")
    table.add_column("Path")
    table.add_column("Description")

    for op in operations:
        table.add_row(op.operation_id, op.method.upper(), op.path, _truncate(op.tool_description))

    console.print(table)


def print_result(result: ToolResult) -> None:
    """Print a tool result, pretty-printing JSON payloads."""
    if not result.is_success:
        console.print(f"[yellow]Upstream returned HTTP {result.status_code}[/yellow]")
    try:
        json.loads(result.text)
    except ValueError:
        console.print(result.text, markup=False)
        return
    console.print_json(result.text)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
