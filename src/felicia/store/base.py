"""Key/value store interface for persisted session state."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """Abstract JSON-valued key/value store scoped to a namespace.

    Values must be JSON-serialisable. Keys are plain strings; the store
    prefixes them with its namespace so several applications may share one
    backend without colliding.
    """

    def __init__(self, namespace: str = "felicia") -> None:
        if not namespace:
            raise ValueError("namespace must be non-empty")
        self.namespace = namespace

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default* if absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*. Missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every key in this store's namespace."""


class MemoryStore(KeyValueStore):
    """In-process store backed by a dict. Nothing survives the process."""

    def __init__(self, namespace: str = "felicia") -> None:
        super().__init__(namespace)
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return sorted(self._data)
