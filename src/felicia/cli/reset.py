"""felicia reset: wipe profile, onboarding progress, and transcript."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from felicia.cli.common import console, load_cli_config, open_store
from felicia.store.session import SessionStore


def reset_cmd(
    store: Annotated[
        Path | None,
        typer.Option("--store", help="Session store path (default: ~/.felicia/session.db)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Forget everything FELICIA learned and restart onboarding."""
    cfg = load_cli_config(store)

    if not yes and not typer.confirm(
        "Forget your profile and conversation and restart onboarding?", default=False
    ):
        console.print("  [dim]Cancelled.[/]")
        raise typer.Exit(0)

    kv = open_store(cfg.store.path)
    try:
        SessionStore(kv).clear()
    finally:
        kv.close()
    console.print("[green]✓[/] Session reset. Run  felicia chat  to start onboarding again.")
