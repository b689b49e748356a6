"""Tests for the conversation controller."""

from __future__ import annotations

import pytest

from felicia.chat.controller import (
    CANCELLED,
    CONNECTED,
    FAILED,
    FALLBACK_MESSAGE,
    ControllerBusyError,
    ConversationController,
    Mode,
)
from felicia.ingest.base import Directory, FolderSelectionCancelled, IngestError
from felicia.models import ASSISTANT, USER
from felicia.rag.assembler import SYSTEM_PROMPT

_NOTES = {"notes.txt": "Project Alpha deadline is Friday.\n\nBudget concerns remain open."}


class _Backend:
    """Completion stub that records prompts."""

    def __init__(self, reply: str = "Friday, according to notes.txt.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def __call__(self, system_prompt: str, prompt: str) -> str:
        self.calls.append((system_prompt, prompt))
        if self.error is not None:
            raise self.error
        return self.reply


def _controller(session, config, backend=None, **kwargs) -> ConversationController:
    return ConversationController(session, backend or _Backend(), config, **kwargs)


def _onboard(controller: ConversationController, knowledge: str = "skip") -> None:
    for answer in ["Let's go", "Sam", "health", "1", knowledge]:
        controller.submit(answer)


# ------------------------------------------------------------------
# Modes + start
# ------------------------------------------------------------------


def test_fresh_session_starts_in_onboarding(session, fast_config):
    controller = _controller(session, fast_config)
    assert controller.mode is Mode.ONBOARDING

    opening = controller.start()
    assert opening.role == ASSISTANT
    assert opening.content.startswith("Welcome!")


def test_start_is_noop_when_transcript_not_empty(session, fast_config):
    controller = _controller(session, fast_config)
    controller.start()
    assert controller.start() is None
    assert len(controller.transcript) == 1


def test_returning_user_is_welcomed_back(session, fast_config):
    _onboard(_controller(session, fast_config))
    session.save_transcript([])

    controller = _controller(session, fast_config)
    assert controller.mode is Mode.CHAT
    assert controller.start().content == "Welcome back, Sam! How can I help you today?"


def test_blank_input_is_ignored(session, fast_config):
    backend = _Backend()
    controller = _controller(session, fast_config, backend)
    assert controller.submit("   ") is None
    assert len(controller.transcript) == 0
    assert backend.calls == []


# ------------------------------------------------------------------
# Onboarding routing
# ------------------------------------------------------------------


def test_onboarding_never_calls_backend(session, fast_config):
    backend = _Backend()
    controller = _controller(session, fast_config, backend)
    controller.start()
    _onboard(controller)

    assert backend.calls == []
    assert controller.mode is Mode.CHAT
    assert "Setup complete, Sam!" in controller.transcript.last.content


def test_onboarding_appends_user_then_prompt(session, fast_config):
    controller = _controller(session, fast_config)
    controller.start()
    controller.submit("Let's go")
    reply = controller.submit("Sam")

    roles = [m.role for m in controller.transcript]
    assert roles == [ASSISTANT, USER, ASSISTANT, USER, ASSISTANT]
    assert "Sam" in reply.content


def test_onboarding_turn_delay_uses_injected_sleep(session, fast_config):
    fast_config.onboarding.turn_delay = 0.25
    delays: list[float] = []
    controller = _controller(session, fast_config, sleep=delays.append)
    controller.submit("hello")
    assert delays == [0.25]


def test_completion_auto_connects_remembered_folder(session, fast_config):
    opened: list[str] = []

    def opener(path: str):
        opened.append(path)
        return Directory("kb", _NOTES)

    controller = _controller(session, fast_config, folder_opener=opener)
    _onboard(controller, knowledge="yes")
    controller.submit("~/kb")

    assert opened == ["~/kb"]
    assert len(controller.corpus) == 1
    assert controller.transcript.last.content == "Knowledge folder connected: 1 document ready."


def test_completion_without_opener_skips_connection(session, fast_config):
    controller = _controller(session, fast_config)
    _onboard(controller, knowledge="yes")
    controller.submit("~/kb")
    assert controller.mode is Mode.CHAT
    assert len(controller.corpus) == 0


# ------------------------------------------------------------------
# Chat routing
# ------------------------------------------------------------------


def test_chat_grounds_prompt_in_corpus(session, fast_config):
    backend = _Backend()
    controller = _controller(session, fast_config, backend)
    _onboard(controller)
    controller.connect_folder(lambda: Directory("kb", _NOTES))

    reply = controller.submit("what is the deadline for Alpha")

    (system_prompt, prompt) = backend.calls[0]
    assert system_prompt == SYSTEM_PROMPT
    assert "[From notes.txt]" in prompt
    assert "Project Alpha deadline is Friday." in prompt
    assert "[User's name is Sam." in prompt
    assert prompt.endswith("User: what is the deadline for Alpha\nFELICIA:")
    assert reply.content == "Friday, according to notes.txt."


def test_chat_prompt_does_not_repeat_current_message_in_history(session, fast_config):
    backend = _Backend()
    controller = _controller(session, fast_config, backend)
    _onboard(controller)
    controller.submit("unique question here")

    (_, prompt) = backend.calls[0]
    assert prompt.count("unique question here") == 1


def test_backend_failure_yields_fallback_and_clears_busy(session, fast_config):
    backend = _Backend(error=ConnectionError("connection refused"))
    controller = _controller(session, fast_config, backend)
    _onboard(controller)

    reply = controller.submit("hello")

    assert reply.role == ASSISTANT
    assert reply.content == FALLBACK_MESSAGE
    assert controller.busy is False
    assert controller.transcript.messages[-2].content == "hello"


def test_busy_controller_rejects_input(session, fast_config):
    controller = _controller(session, fast_config)
    controller.busy = True
    with pytest.raises(ControllerBusyError):
        controller.submit("hello")
    with pytest.raises(ControllerBusyError):
        controller.connect_folder(lambda: Directory("kb"))


def test_busy_set_during_completion(session, fast_config):
    seen: list[bool] = []
    controller = None

    def backend(system_prompt, prompt):
        seen.append(controller.busy)
        return "ok"

    controller = _controller(session, fast_config, backend)
    _onboard(controller)
    controller.submit("hi")

    assert seen == [True]
    assert controller.busy is False


# ------------------------------------------------------------------
# Folder connection
# ------------------------------------------------------------------


def test_connect_folder_swaps_corpus(session, fast_config):
    controller = _controller(session, fast_config)
    report = controller.connect_folder(lambda: Directory("kb", {"a.txt": "a", "b.md": "b"}))

    assert report.outcome == CONNECTED
    assert report.documents == 2
    assert len(controller.corpus) == 2


def test_cancelled_selection_keeps_previous_corpus(session, fast_config):
    controller = _controller(session, fast_config)
    controller.connect_folder(lambda: Directory("kb", _NOTES))

    def cancel():
        raise FolderSelectionCancelled()

    report = controller.connect_folder(cancel)

    assert report.outcome == CANCELLED
    assert len(controller.corpus) == 1
    assert controller.busy is False


def test_cancelled_ingestion_keeps_previous_corpus(session, fast_config):
    controller = _controller(session, fast_config)
    controller.connect_folder(lambda: Directory("kb", _NOTES))

    report = controller.connect_folder(lambda: Directory("other", {"x.txt": "x"}), should_cancel=lambda: True)

    assert report.outcome == CANCELLED
    assert controller.corpus.get("kb/notes.txt") is not None


def test_failed_ingestion_reports_and_keeps_corpus(session, fast_config):
    controller = _controller(session, fast_config)
    controller.connect_folder(lambda: Directory("kb", _NOTES))

    def broken():
        raise IngestError("Knowledge folder not found: /nope")

    report = controller.connect_folder(broken)

    assert report.outcome == FAILED
    assert "not found" in report.message
    assert len(controller.corpus) == 1


# ------------------------------------------------------------------
# Reset
# ------------------------------------------------------------------


def test_reset_returns_to_onboarding(session, fast_config):
    controller = _controller(session, fast_config)
    _onboard(controller)
    controller.submit("hello")

    controller.reset()

    assert controller.mode is Mode.ONBOARDING
    assert len(controller.transcript) == 0
    assert len(controller.engine.facts) == 0
    assert not session.is_onboarding_complete()
    assert session.load_transcript() == []
    assert controller.start().content.startswith("Welcome!")


def test_reset_state_survives_restart(session, fast_config):
    controller = _controller(session, fast_config)
    _onboard(controller)
    controller.reset()

    restarted = _controller(session, fast_config)
    assert restarted.mode is Mode.ONBOARDING
    assert restarted.engine.current_step_index == 0
