"""``runnel routes`` — compile a route file and show its dispatch table."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from runnel.config import settings
from runnel.core.errors import RouteConfigError
from runnel.routing.loader import load_route_file
from runnel.routing.table import DispatchTable, RouteTable

console = Console()


def render_dispatch_table(table: DispatchTable, routes: RouteTable) -> Table:
    """Build a Rich table with one row per compiled (intake, sink) pipeline.

    The "Accepts" column shows each link's declared types, not guard filters.
    """
    title = "Dispatch Table" + (" [dim](guarded)[/dim]" if routes.has_guard else "")
    rich_table = Table(title=title)
    rich_table.add_column("Intake", style="cyan")
    rich_table.add_column("Sink", style="green")
    rich_table.add_column("Accepts")
    rich_table.add_column("Stages", style="dim")

    for intake_name, pipelines in table.items():
        links = routes.links_for(intake_name)
        for pipeline in pipelines:
            allowed = links.get(pipeline.sink_name or "", frozenset())
            accepts = ", ".join(sorted(allowed)) if allowed else "[dim]all[/dim]"
            stages = " > ".join(pipeline.stage_names) or "-"
            rich_table.add_row(intake_name, pipeline.sink_name or "?", accepts, stages)
    return rich_table


def routes_cmd(
    path: Path = typer.Argument(
        None, help="Route file to compile (defaults to RUNNEL_ROUTES_PATH)."
    ),
) -> None:
    """Compile a route file and print the resulting dispatch table."""
    route_path = path or settings.routes_path
    try:
        route_table = load_route_file(route_path)
        dispatch_table = route_table.compile()
    except RouteConfigError as exc:
        console.print(f"[bold red]Route configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    if not dispatch_table:
        console.print("[dim]No intakes flow to any sink.[/dim]")
        return

    console.print(render_dispatch_table(dispatch_table, route_table))
    counts = dispatch_table.sink_counts()
    console.print(
        f"[bold]{len(counts)}[/bold] intake(s), [bold]{sum(counts.values())}[/bold] pipeline(s)"
    )
