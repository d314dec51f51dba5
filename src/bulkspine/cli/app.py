"""
Root Typer application for the bulk-spine CLI.

    bulkspine describe myapp.models:Product [--json]
    bulkspine settings [--json]
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from bulkspine.bulk.schema import describe as describe_row_type
from bulkspine.cli.utils import (
    descriptor_to_dict,
    err_console,
    load_row_type,
    print_descriptor,
    print_dict,
    print_json,
)
from bulkspine.core.errors import SchemaError
from bulkspine.core.logging import configure_logging
from bulkspine.core.settings import get_settings

app = Typer(
    name="bulkspine",
    help="bulk-spine — bulk insert/update engines and a generic repository for SQLAlchemy.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("bulk-spine")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"bulk-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for engine events."),
    log_json: bool = typer.Option(False, "--log-json", help="Emit JSON log lines."),
) -> None:
    """bulk-spine CLI — inspect row types and configuration."""
    configure_logging(level=log_level, json_format=log_json)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("describe")
def describe(
    target: str = typer.Argument(..., help="Row type as MODULE:CLASS"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Show the columns the bulk engines load for a row type."""
    row_type = load_row_type(target)
    try:
        descriptor = describe_row_type(row_type)
    except SchemaError as e:
        err_console.print(f"[bold red]Schema error[/bold red]: {e.message}")
        raise typer.Exit(code=1) from e

    if as_json:
        print_json(descriptor_to_dict(descriptor))
        return
    print_descriptor(descriptor)


@app.command("settings")
def show_settings(
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Show the resolved settings (env vars + .env + defaults)."""
    try:
        settings = get_settings(_force_reload=True)
    except ValueError as e:
        err_console.print(f"[bold red]Configuration error[/bold red]: {e}")
        raise typer.Exit(code=1) from e

    if as_json:
        print_json(settings.model_dump())
        return
    print_dict(settings.model_dump(), title="Settings")
