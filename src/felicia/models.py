"""Domain models shared by the onboarding, retrieval, and conversation layers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class FactAlreadySetError(ValueError):
    """Raised when a profile fact is written twice in one onboarding run."""


USER = "user"
ASSISTANT = "assistant"
_ROLES = frozenset([USER, ASSISTANT])


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class Message:
    role: str
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            role=str(data["role"]),
            content=str(data["content"]),
            id=str(data.get("id") or uuid.uuid4().hex),
            timestamp=str(data.get("timestamp") or _utc_now()),
        )


# Profile fact keys collected by the onboarding script.
NAME = "name"
FOCUS_AREA = "focusArea"
OBSTACLES = "obstacles"
KNOWLEDGE_PATH = "knowledgePath"

KNOWN_FACTS: frozenset[str] = frozenset([NAME, FOCUS_AREA, OBSTACLES, KNOWLEDGE_PATH])
LIST_FACTS: frozenset[str] = frozenset([OBSTACLES])


class ProfileFacts:
    """Facts about the user collected during onboarding.

    Each key may be written at most once per onboarding run; ``clear()``
    starts a new run. List-valued facts (``obstacles``) are stored as lists.
    """

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        for key, value in (values or {}).items():
            if key in KNOWN_FACTS:
                if key in LIST_FACTS:
                    self._values[key] = [value] if isinstance(value, str) else list(value)
                else:
                    self._values[key] = str(value)

    def set(self, key: str, value: str | list[str]) -> None:
        """Store *value* under *key*.

        Raises:
            KeyError: If *key* is not a known profile fact.
            FactAlreadySetError: If *key* already holds a value.
        """
        if key not in KNOWN_FACTS:
            raise KeyError(f"Unknown profile fact: {key!r}")
        if key in self._values:
            raise FactAlreadySetError(f"Profile fact {key!r} is already set")
        if key in LIST_FACTS:
            self._values[key] = [value] if isinstance(value, str) else list(value)
        else:
            self._values[key] = ", ".join(value) if isinstance(value, list) else value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def display(self, key: str) -> str:
        """Return the fact as text; list facts are comma-joined."""
        value = self._values[key]
        if isinstance(value, list):
            return ", ".join(value)
        return value

    def clear(self) -> None:
        self._values.clear()

    def to_dict(self) -> dict[str, Any]:
        return {k: list(v) if isinstance(v, list) else v for k, v in self._values.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProfileFacts):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"ProfileFacts({self._values!r})"


@dataclass(frozen=True)
class Document:
    name: str
    path: str
    content: str


@dataclass(frozen=True)
class Snippet:
    """A paragraph excerpt selected by the retriever.

    Attributes:
        source_name: Name of the document the paragraph came from.
        text: Paragraph text, truncated to the configured snippet length.
        score: Number of distinct query tokens found in the paragraph.
    """

    source_name: str
    text: str
    score: int
