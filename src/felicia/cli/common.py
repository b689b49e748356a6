"""Helpers shared by the CLI commands: config loading, store opening, rendering."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from felicia.chat.controller import CANCELLED, CONNECTED, IngestReport
from felicia.cli.errors import (
    err_config,
    err_folder,
    err_store_unavailable,
    warn_folder_cancelled,
    warn_skipped_files,
)
from felicia.config import ConfigError, FeliciaConfig, load_config
from felicia.models import USER, Message
from felicia.store.sqlite import SqliteStore

console = Console()


def load_cli_config(store: Path | None = None) -> FeliciaConfig:
    """Load config, print an actionable error and exit(1) if it is invalid."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if store is not None:
        cfg.store.path = str(store)
    return cfg


def open_store(path: str) -> SqliteStore:
    try:
        return SqliteStore(Path(path).expanduser())
    except (sqlite3.Error, OSError) as exc:
        console.print(err_store_unavailable(path, str(exc)))
        raise typer.Exit(1)


def render_message(message: Message) -> None:
    if message.role == USER:
        console.print(Panel(Text(message.content), title="You", title_align="right", border_style="magenta"))
    else:
        console.print(Panel(Text(message.content), title="FELICIA", title_align="left", border_style="cyan"))


def print_report(report: IngestReport) -> None:
    if report.outcome == CONNECTED:
        console.print(f"[green]✓[/] {report.message}")
        if report.skipped:
            console.print(warn_skipped_files(report.skipped))
    elif report.outcome == CANCELLED:
        console.print(warn_folder_cancelled())
    else:
        console.print(err_folder(report.message))
