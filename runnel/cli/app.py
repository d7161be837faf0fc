"""Main Typer application — imports and registers all CLI commands.

Entry point: ``runnel`` (configured via pyproject.toml console_scripts).

Commands: routes, pump, version.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from runnel.cli.commands.pump import pump_cmd
from runnel.cli.commands.routes import routes_cmd
from runnel.config import settings

app = typer.Typer(
    name="runnel",
    help="Runnel: configuration-driven message routing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="routes", help="Compile a route file and show its dispatch table.")(routes_cmd)
app.command(name="pump", help="Publish one message through a route file.")(pump_cmd)


def configure_logging(level: str) -> None:
    """Send library log records to a Rich handler on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        settings.log_level, "--log-level", help="Logging level (DEBUG, INFO, ...)."
    ),
) -> None:
    """Runnel: configuration-driven message routing."""
    configure_logging(log_level)


@app.command(name="version", help="Show the installed Runnel version.")
def version_cmd() -> None:
    """Print the Runnel version."""
    from runnel import __version__

    Console().print(f"runnel [bold]{__version__}[/bold]")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
