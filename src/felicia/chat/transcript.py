"""Append-only conversation transcript, persisted on every append."""

from __future__ import annotations

from typing import Iterator

from felicia.models import Message
from felicia.store.session import SessionStore


class Transcript:
    def __init__(self, session: SessionStore) -> None:
        self._session = session
        self._messages: list[Message] = session.load_transcript()

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        self._session.save_transcript(self._messages)
        return message

    def tail(self, n: int) -> tuple[Message, ...]:
        if n <= 0:
            return ()
        return tuple(self._messages[-n:])

    def clear(self) -> None:
        """Drop every message. Only used by a full session reset."""
        self._messages = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))
