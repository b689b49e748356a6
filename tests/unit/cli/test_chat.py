"""Tests for the felicia chat command."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from felicia.cli.main import app
from felicia.models import ProfileFacts
from felicia.store.session import SessionStore
from felicia.store.sqlite import SqliteStore

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeBackend:
    def __init__(self, reply: str = "Friday, per notes.txt.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    def __call__(self, system_prompt: str, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def backend(monkeypatch):
    fake = _FakeBackend()
    monkeypatch.setattr("felicia.cli.chat.make_completion", lambda cfg: fake)
    return fake


def _onboarded(store_path: Path, name: str = "Sam", knowledge_path: str | None = None) -> None:
    with SqliteStore(store_path) as kv:
        session = SessionStore(kv)
        facts = ProfileFacts()
        facts.set("name", name)
        facts.set("focusArea", "health")
        if knowledge_path:
            facts.set("knowledgePath", knowledge_path)
        session.save_profile(facts)
        session.mark_onboarding_complete()


def _knowledge(tmp_path: Path) -> Path:
    kb = tmp_path / "kb"
    kb.mkdir()
    (kb / "notes.txt").write_text(
        "Project Alpha deadline is Friday.\n\nBudget concerns remain open.", encoding="utf-8"
    )
    return kb


# ---------------------------------------------------------------------------
# Onboarding through the terminal
# ---------------------------------------------------------------------------


def test_first_run_shows_welcome(cli_env, backend) -> None:
    result = runner.invoke(app, ["chat"], input="/quit\n")
    assert result.exit_code == 0, result.output
    assert "Welcome!" in result.output


def test_onboarding_run_persists_profile(cli_env, backend) -> None:
    result = runner.invoke(app, ["chat"], input="Let's go\nSam\nhealth\n1, 2\nskip\n/quit\n")

    assert result.exit_code == 0, result.output
    assert "Setup complete, Sam!" in result.output
    assert backend.prompts == []

    with SqliteStore(cli_env) as kv:
        session = SessionStore(kv)
        assert session.is_onboarding_complete()
        assert session.load_profile().get("obstacles") == ["Procrastination", "Perfectionism"]


def test_eof_ends_chat_cleanly(cli_env, backend) -> None:
    result = runner.invoke(app, ["chat"], input="")
    assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Chat mode
# ---------------------------------------------------------------------------


def test_returning_user_greeted_by_name(cli_env, backend) -> None:
    _onboarded(cli_env)
    result = runner.invoke(app, ["chat"], input="/quit\n")
    assert "Welcome back, Sam!" in result.output


def test_folder_option_grounds_answers(cli_env, backend, tmp_path) -> None:
    _onboarded(cli_env)
    kb = _knowledge(tmp_path)

    result = runner.invoke(
        app, ["chat", "--folder", str(kb)], input="what is the deadline for Alpha\n/quit\n"
    )

    assert result.exit_code == 0, result.output
    assert "1 document ready" in result.output
    assert "Friday, per notes.txt." in result.output
    assert "[From notes.txt]" in backend.prompts[0]


def test_remembered_folder_connected_at_startup(cli_env, backend, tmp_path) -> None:
    kb = _knowledge(tmp_path)
    _onboarded(cli_env, knowledge_path=str(kb))

    result = runner.invoke(app, ["chat"], input="deadline for Alpha\n/quit\n")

    assert "1 document ready" in result.output
    assert "Project Alpha deadline is Friday." in backend.prompts[0]


def test_backend_failure_shows_fallback(cli_env, backend) -> None:
    _onboarded(cli_env)
    backend.error = ConnectionError("connection refused")

    result = runner.invoke(app, ["chat"], input="hello\n/quit\n")

    assert result.exit_code == 0, result.output
    assert "could not reach the local AI" in result.output


def test_missing_api_key_exits_with_hint(cli_env, backend, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = runner.invoke(app, ["chat", "--model", "openai/gpt-4o"], input="/quit\n")
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_invalid_config_exits(cli_env, backend, tmp_path) -> None:
    (tmp_path / "felicia.yaml").write_text("retrieval:\n  limit: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["chat"], input="/quit\n")
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


# ---------------------------------------------------------------------------
# In-chat commands
# ---------------------------------------------------------------------------


def test_connect_missing_folder_reports_error(cli_env, backend, tmp_path) -> None:
    _onboarded(cli_env)
    result = runner.invoke(app, ["chat"], input=f"/connect {tmp_path / 'nope'}\n/quit\n")
    assert result.exit_code == 0, result.output
    assert "not found" in result.output


def test_connect_blank_path_is_cancelled(cli_env, backend) -> None:
    _onboarded(cli_env)
    result = runner.invoke(app, ["chat"], input="/connect\n\n/quit\n")
    assert "No folder connected" in result.output


def test_connect_with_path(cli_env, backend, tmp_path) -> None:
    _onboarded(cli_env)
    kb = _knowledge(tmp_path)
    result = runner.invoke(app, ["chat"], input=f"/connect {kb}\n/quit\n")
    assert "1 document ready" in result.output


def test_reset_command_restarts_onboarding(cli_env, backend) -> None:
    _onboarded(cli_env)
    result = runner.invoke(app, ["chat"], input="/reset\n/quit\n")

    assert "Session reset." in result.output
    assert "Welcome!" in result.output
    with SqliteStore(cli_env) as kv:
        assert not SessionStore(kv).is_onboarding_complete()
