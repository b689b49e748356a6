"""Prompt assembly for chat turns.

Prompt structure (fixed order, empty blocks omitted):
  [User's name is ... They're focused on: ... Their challenges: ...]
  Relevant information from user's knowledge folder:
    [From <document name>]
    <snippet>
  User: ... / FELICIA: ...     ← last ``history_window`` messages, oldest first
  User: <current message>
  FELICIA:
"""

from __future__ import annotations

from typing import Sequence

from felicia.config import ContextCfg
from felicia.models import FOCUS_AREA, NAME, OBSTACLES, USER, Message, ProfileFacts, Snippet

ASSISTANT_LABEL = "FELICIA"
USER_LABEL = "User"

SYSTEM_PROMPT = """You are FELICIA, a warm and helpful personal AI assistant.

Your personality:
- Friendly, patient, and encouraging
- You speak naturally, not like a robot
- You run locally on the user's device, and their data stays private

Your capabilities:
- General conversation and help
- Answering questions and helping the user organise their thoughts
- Reading and referencing the user's personal knowledge files

When you receive "Relevant information from user's knowledge folder", use it to
answer the question and mention the file names you relied on. Treat it as the
primary source of truth about the user's own affairs.

Be concise but warm. Use emoji sparingly (1-2 per message at most)."""

_KNOWLEDGE_HEADER = "Relevant information from user's knowledge folder:"


def assemble(
    facts: ProfileFacts,
    snippets: Sequence[Snippet],
    history: Sequence[Message],
    message: str,
    config: ContextCfg | None = None,
) -> str:
    """Build the completion prompt for one chat turn.

    Args:
        facts: Profile facts collected during onboarding.
        snippets: Retrieved knowledge snippets (may be empty).
        history: Transcript messages preceding *message*; only the last
            ``config.history_window`` are included.
        message: The user's current message.
        config: Context configuration.

    Returns:
        Prompt text ending with the assistant completion cue.
    """
    cfg = config or ContextCfg()
    parts: list[str] = []

    profile = _format_profile(facts)
    if profile:
        parts.append(profile)

    knowledge = _format_snippets(snippets)
    if knowledge:
        parts.append(knowledge)

    tail = list(history)[-cfg.history_window:] if cfg.history_window > 0 else []
    lines = [_format_message(m) for m in tail]
    lines.append(f"{USER_LABEL}: {message}")
    lines.append(f"{ASSISTANT_LABEL}:")
    parts.append("\n".join(lines))

    return "\n\n".join(parts)


def _format_profile(facts: ProfileFacts) -> str:
    sentences: list[str] = []
    if NAME in facts:
        sentences.append(f"User's name is {facts.display(NAME)}.")
    if FOCUS_AREA in facts:
        sentences.append(f"They're focused on: {facts.display(FOCUS_AREA)}.")
    if OBSTACLES in facts and facts.get(OBSTACLES):
        sentences.append(f"Their challenges: {facts.display(OBSTACLES)}.")
    if not sentences:
        return ""
    return "[" + " ".join(sentences) + "]"


def _format_snippets(snippets: Sequence[Snippet]) -> str:
    if not snippets:
        return ""
    blocks = [f"[From {s.source_name}]\n{s.text}" for s in snippets]
    return _KNOWLEDGE_HEADER + "\n\n" + "\n\n".join(blocks)


def _format_message(message: Message) -> str:
    label = USER_LABEL if message.role == USER else ASSISTANT_LABEL
    return f"{label}: {message.content}"
