"""felicia status: onboarding progress, profile facts, and transcript size."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from felicia.cli.common import console, load_cli_config, open_store
from felicia.onboarding.script import DEFAULT_SCRIPT
from felicia.store.session import SessionStore


def status_cmd(
    store: Annotated[
        Path | None,
        typer.Option("--store", help="Session store path (default: ~/.felicia/session.db)."),
    ] = None,
) -> None:
    """Show the persisted session state."""
    cfg = load_cli_config(store)
    kv = open_store(cfg.store.path)
    try:
        session = SessionStore(kv)
        complete = session.is_onboarding_complete()
        step = session.load_step()
        facts = session.load_profile()
        n_messages = len(session.load_transcript())
    finally:
        kv.close()

    total = len(DEFAULT_SCRIPT)
    if complete:
        mode = "[green]chat[/] (onboarding complete)"
    else:
        step_id = DEFAULT_SCRIPT[min(step, total - 1)].id
        mode = f"[yellow]onboarding[/] (step {min(step, total - 1) + 1}/{total}: {step_id})"

    console.print(
        Panel(
            f"Store:       {cfg.store.path}\n"
            f"Mode:        {mode}\n"
            f"Model:       {cfg.completion.model}\n"
            f"Transcript:  {n_messages} messages",
            title="FELICIA",
            border_style="cyan",
        )
    )

    table = Table(title="Profile", show_header=True)
    table.add_column("Fact", style="cyan")
    table.add_column("Value")
    for key, value in facts.to_dict().items():
        table.add_row(key, ", ".join(value) if isinstance(value, list) else value)
    if not len(facts):
        table.add_row("[dim](none)[/]", "")
    console.print(table)
