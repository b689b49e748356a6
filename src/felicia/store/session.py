"""Typed access to the persisted session: onboarding progress and transcript.

All keys live under the store's namespace, so ``clear()`` wipes exactly the
session and nothing else sharing the backend. Profile facts, the current step
and the completion flag share one ``onboarding`` entry; every save is a single
store write.
"""

from __future__ import annotations

from typing import Any

from felicia.models import Message, ProfileFacts
from felicia.store.base import KeyValueStore

PROGRESS_KEY = "onboarding"
TRANSCRIPT_KEY = "transcript"


class SessionStore:
    """Repository over a KeyValueStore for the session entries."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def backend(self) -> KeyValueStore:
        return self._store

    # ------------------------------------------------------------------
    # Onboarding progress
    # ------------------------------------------------------------------

    def _load_progress(self) -> dict[str, Any]:
        raw = self._store.get(PROGRESS_KEY)
        return raw if isinstance(raw, dict) else {}

    def _update_progress(self, **changes: Any) -> None:
        progress = self._load_progress()
        progress.update(changes)
        self._store.set(PROGRESS_KEY, progress)

    def save_progress(self, facts: ProfileFacts, step: int, complete: bool = False) -> None:
        """Persist profile, step index and completion flag in one write."""
        self._store.set(
            PROGRESS_KEY,
            {"profile": facts.to_dict(), "step": step, "complete": complete},
        )

    def load_profile(self) -> ProfileFacts:
        profile = self._load_progress().get("profile")
        return ProfileFacts(profile if isinstance(profile, dict) else {})

    def save_profile(self, facts: ProfileFacts) -> None:
        self._update_progress(profile=facts.to_dict())

    def is_onboarding_complete(self) -> bool:
        return self._load_progress().get("complete") is True

    def mark_onboarding_complete(self) -> None:
        self._update_progress(complete=True)

    def load_step(self) -> int:
        value = self._load_progress().get("step", 0)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    def save_step(self, index: int) -> None:
        self._update_progress(step=index)

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def load_transcript(self) -> list[Message]:
        raw = self._store.get(TRANSCRIPT_KEY) or []
        return [Message.from_dict(item) for item in raw]

    def save_transcript(self, messages: list[Message]) -> None:
        self._store.set(TRANSCRIPT_KEY, [m.to_dict() for m in messages])

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Remove every persisted session entry."""
        self._store.clear()
