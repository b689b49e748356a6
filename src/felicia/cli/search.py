"""felicia search: preview keyword retrieval over a knowledge folder.

No model call is made: the folder is ingested, the query scored, and the
selected snippets shown exactly as they would be placed in the prompt.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from felicia.cli.common import console, load_cli_config
from felicia.cli.errors import err_folder, warn_skipped_files
from felicia.ingest.base import IngestError, open_folder
from felicia.ingest.corpus import ingest
from felicia.rag.retriever import retrieve, tokenize


def search_cmd(
    folder: Annotated[Path, typer.Argument(help="Knowledge folder to search.")],
    query: Annotated[str, typer.Argument(help="Question or keywords.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Maximum snippets (default: retrieval.limit)."),
    ] = None,
) -> None:
    """Show which knowledge snippets a question would retrieve."""
    cfg = load_cli_config()
    if limit is not None:
        cfg.retrieval.limit = limit

    try:
        corpus = ingest(open_folder(folder), cfg.ingest)
    except (IngestError, OSError) as exc:
        console.print(err_folder(str(exc)))
        raise typer.Exit(1)

    console.print(f"[dim]{len(corpus)} documents · tokens: {', '.join(tokenize(query)) or '(none)'}[/]")
    if corpus.skipped:
        console.print(warn_skipped_files(corpus.skipped))

    snippets = retrieve(query, corpus, cfg.retrieval)
    if not snippets:
        console.print("[yellow]No relevant knowledge found.[/]")
        return

    table = Table(show_lines=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Source", style="cyan")
    table.add_column("Snippet")
    for i, snippet in enumerate(snippets, start=1):
        table.add_row(str(i), str(snippet.score), snippet.source_name, snippet.text)
    console.print(table)
