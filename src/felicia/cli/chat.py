"""felicia chat: interactive conversation in the terminal.

Usage:
  felicia chat [--folder PATH] [--store PATH] [--model MODEL]

In-chat commands:
  /connect [PATH]  Connect (or re-connect) a knowledge folder
  /reset           Forget profile and transcript; restart onboarding
  /quit            Leave the chat (also Ctrl-D)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from felicia.chat.controller import ConversationController, Mode
from felicia.cli.common import console, load_cli_config, open_store, print_report, render_message
from felicia.cli.errors import err_no_api_key
from felicia.ingest.base import FolderEntry, FolderSelectionCancelled, open_folder
from felicia.models import KNOWLEDGE_PATH
from felicia.rag.llm_client import make_completion, provider_of, validate_api_key
from felicia.store.session import SessionStore

_PROMPT = "[bold magenta]you ›[/] "


def chat_cmd(
    folder: Annotated[
        Path | None,
        typer.Option("--folder", "-f", help="Knowledge folder to connect at startup."),
    ] = None,
    store: Annotated[
        Path | None,
        typer.Option("--store", help="Session store path (default: ~/.felicia/session.db)."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="LiteLLM model string, e.g. ollama/llama3.2:3b."),
    ] = None,
) -> None:
    """Chat with FELICIA. New users are walked through onboarding first."""
    cfg = load_cli_config(store)
    if model:
        cfg.completion.model = model

    try:
        validate_api_key(cfg.completion.model)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(cfg.completion.model)))
        raise typer.Exit(1)

    kv = open_store(cfg.store.path)
    try:
        controller = ConversationController(
            SessionStore(kv),
            make_completion(cfg.completion),
            cfg,
            folder_opener=open_folder,
        )
        _connect_at_startup(controller, folder)

        for message in controller.transcript.tail(cfg.context.history_window):
            render_message(message)
        opening = controller.start()
        if opening is not None:
            render_message(opening)

        _loop(controller)
    finally:
        kv.close()


def _connect_at_startup(controller: ConversationController, folder: Path | None) -> None:
    """Connect --folder, or the folder remembered from onboarding."""
    remembered = controller.engine.facts.get(KNOWLEDGE_PATH)
    target = str(folder) if folder is not None else remembered
    if target and (folder is not None or controller.mode is Mode.CHAT):
        print_report(controller.connect_folder(lambda: open_folder(target)))


def _loop(controller: ConversationController) -> None:
    while True:
        try:
            text = console.input(_PROMPT)
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        command = text.strip()
        if command in ("/quit", "/exit"):
            break
        if command == "/reset":
            controller.reset()
            console.print("[dim]Session reset.[/]")
            opening = controller.start()
            if opening is not None:
                render_message(opening)
            continue
        if command.startswith("/connect"):
            arg = command[len("/connect"):].strip()
            print_report(controller.connect_folder(lambda: _select_folder(arg)))
            continue

        before = len(controller.transcript)
        with console.status("[dim]FELICIA is thinking…[/]", spinner="dots"):
            controller.submit(text)
        for message in controller.transcript.messages[before + 1:]:
            render_message(message)


def _select_folder(path: str) -> FolderEntry:
    """Ask for a folder path if none was given; a blank answer cancels."""
    if not path:
        path = typer.prompt("Knowledge folder path", default="", show_default=False).strip()
    if not path:
        raise FolderSelectionCancelled()
    return open_folder(path)
