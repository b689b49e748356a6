"""Felicia rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from felicia.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{escape(provider)}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or use a local model:  --model ollama/llama3.2:3b"
    )


def err_config(detail: str) -> str:
    """Config file could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {escape(detail)}\n"
        "  Fix felicia.yaml (or ~/.felicia/config.yaml) and try again."
    )


def err_folder(detail: str) -> str:
    """Knowledge folder could not be read; previous knowledge is kept."""
    return (
        f"[red]Error:[/] {escape(detail)}\n"
        "  Check the path exists and is readable, then run  /connect <path>  again.\n"
        "  Your previously connected knowledge is unchanged."
    )


def warn_folder_cancelled() -> str:
    """User backed out of folder selection."""
    return (
        "[yellow]No folder connected.[/] Your previous knowledge is unchanged.\n"
        "  Connect one any time with  /connect <path>"
    )


def err_store_unavailable(path: str, detail: str) -> str:
    """Session store could not be opened."""
    return (
        f"[red]Error:[/] Cannot open session store '{escape(path)}'.\n"
        f"  {escape(detail)}\n"
        "  Use  --store PATH  to choose a writable location."
    )


def warn_skipped_files(count: int) -> str:
    """Some files in the knowledge folder could not be read."""
    noun = "file" if count == 1 else "files"
    return (
        f"[yellow]⚠[/] {count} {noun} skipped (unreadable or not UTF-8 text).\n"
        "  Run with  --verbose  to see which."
    )
