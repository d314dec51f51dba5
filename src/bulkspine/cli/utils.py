"""
CLI utility helpers — output formatting and row-type loading.
"""

from __future__ import annotations

import importlib
import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from bulkspine.bulk.schema import RowTypeDescriptor

console = Console()
err_console = Console(stderr=True)


def load_row_type(target: str) -> type:
    """Import ``package.module:ClassName``."""
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        err_console.print(f"[bold red]Error[/bold red]: expected MODULE:CLASS, got {target!r}")
        raise typer.Exit(code=2)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        err_console.print(f"[bold red]Error[/bold red]: cannot import {module_name}: {e}")
        raise typer.Exit(code=1) from e
    row_type = getattr(module, class_name, None)
    if not isinstance(row_type, type):
        err_console.print(f"[bold red]Error[/bold red]: {class_name} not found in {module_name}")
        raise typer.Exit(code=1)
    return row_type


def descriptor_to_dict(descriptor: RowTypeDescriptor) -> dict[str, Any]:
    """Plain-dict view of a descriptor for JSON output."""

    def _column(c: Any) -> dict[str, Any]:
        return {
            "name": c.name,
            "attribute": c.key,
            "store_type": str(c.store_type),
            "nullable": c.nullable,
            "key": c.primary_key,
        }

    return {
        "row_type": descriptor.row_type.__name__,
        "table": descriptor.table_name,
        "deletion_policy": descriptor.deletion_policy.value,
        "key_columns": [_column(c) for c in descriptor.key_columns],
        "columns": [_column(c) for c in descriptor.columns],
    }


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_descriptor(descriptor: RowTypeDescriptor) -> None:
    """Render a descriptor as a Rich table."""
    data = descriptor_to_dict(descriptor)
    console.print(
        f"[bold]{data['row_type']}[/bold] → [cyan]{data['table']}[/cyan] "
        f"(delete: {data['deletion_policy']})"
    )
    table = Table(show_lines=False, pad_edge=False)
    for col in ("name", "attribute", "store_type", "nullable", "key"):
        table.add_column(col, overflow="fold")
    for column in data["key_columns"] + data["columns"]:
        table.add_row(*(str(v) for v in column.values()))
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
