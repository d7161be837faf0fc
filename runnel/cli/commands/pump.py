"""``runnel pump`` — publish one message through a route file, synchronously.

Useful for checking a route configuration end to end: every dispatch runs
inline and each reported outcome is printed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.table import Table

from runnel.config import settings
from runnel.core.errors import RouteConfigError
from runnel.engine.deferral import ImmediateDeferrer
from runnel.engine.dispatch import DispatchEngine
from runnel.engine.reporting import QueueOutcomeSink
from runnel.models.context import EXCEPTION_KEY, FILTERED_BY_KEY, Result
from runnel.routing.loader import load_route_file

console = Console()


class CliMessage(BaseModel):
    """A JSON payload published from the command line."""

    model_config = ConfigDict(frozen=True)

    data: Any = None
    message_type: str | None = None


def _describe(result: Result) -> str:
    _status, metadata, _body = result
    if EXCEPTION_KEY in metadata:
        return f"[red]{metadata[EXCEPTION_KEY]!r}[/red]"
    if FILTERED_BY_KEY in metadata:
        return f"[yellow]filtered by {metadata[FILTERED_BY_KEY]}[/yellow]"
    return ", ".join(f"{k}={v!r}" for k, v in metadata.items()) or "-"


def pump_cmd(
    path: Path = typer.Argument(..., help="Route file to load."),
    intake: list[str] = typer.Option(
        [], "--intake", "-i", help="Intake to publish to (repeatable)."
    ),
    payload: str = typer.Option("null", "--payload", "-p", help="Message payload as JSON."),
    message_type: str = typer.Option(None, "--type", "-t", help="Declared message type."),
) -> None:
    """Publish one message and print every reported outcome."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        console.print(f"[bold red]Invalid JSON payload:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    try:
        dispatch_table = load_route_file(path).compile()
    except RouteConfigError as exc:
        console.print(f"[bold red]Route configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    successes = QueueOutcomeSink()
    errors = QueueOutcomeSink()
    engine = DispatchEngine(
        dispatch_table,
        deferrer=ImmediateDeferrer(),
        on_success=successes,
        on_error=errors,
        default_intake=settings.default_intake,
    )
    message = CliMessage(data=data, message_type=message_type)
    scheduled = engine.publish(message, *intake)

    outcomes = Table(title="Outcomes")
    outcomes.add_column("Status", justify="right")
    outcomes.add_column("Detail")
    for result in successes.drain():
        outcomes.add_row(f"[green]{result.status}[/green]", _describe(result))
    failures = errors.drain()
    for result in failures:
        outcomes.add_row(f"[red]{result.status}[/red]", _describe(result))

    console.print(f"Scheduled [bold]{scheduled}[/bold] dispatch(es).")
    if scheduled:
        console.print(outcomes)
    if failures:
        raise typer.Exit(code=1)
