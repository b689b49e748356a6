"""Felicia CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from felicia.cli.chat import chat_cmd
from felicia.cli.common import console
from felicia.cli.reset import reset_cmd
from felicia.cli.search import search_cmd
from felicia.cli.status import status_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("felicia")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"felicia {_version()}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG with --verbose, else WARNING."""
    logger = logging.getLogger("felicia")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=console, show_path=False, markup=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


app = typer.Typer(
    name="felicia",
    help=(
        "FELICIA, your personal AI assistant.\n\n"
        "  felicia chat    Talk to FELICIA (onboarding runs on first use).\n"
        "  felicia search  Preview what your knowledge folder would contribute."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """FELICIA, your personal AI assistant."""
    configure_logging(verbose)


app.command("chat")(chat_cmd)
app.command("search")(search_cmd)
app.command("status")(status_cmd)
app.command("reset")(reset_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Felicia version."""
    typer.echo(f"felicia {_version()}")


if __name__ == "__main__":
    app()
