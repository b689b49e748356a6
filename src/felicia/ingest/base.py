"""Folder access boundary: a tree of file/directory handles.

The ingestion core never touches the OS directly; it walks ``FolderEntry``
handles. ``LocalEntry`` adapts a filesystem path, while ``TextFile`` and
``Directory`` describe an already-decoded tree held in memory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

FILE = "file"
DIRECTORY = "directory"


class IngestError(RuntimeError):
    """Raised when a knowledge folder cannot be opened or walked."""


class IngestCancelled(Exception):
    """Raised when the caller cancels an ingestion in progress."""


class FolderSelectionCancelled(Exception):
    """Raised by a folder selector when the user declines to pick a folder."""


class FolderEntry(ABC):
    """A single node of a folder tree handed to ``ingest()``."""

    name: str
    kind: str

    @property
    def path(self) -> str:
        """Identifier unique within the tree; defaults to the entry name."""
        return self.name

    @abstractmethod
    def read(self, max_chars: int | None = None) -> str:
        """Return the decoded text of a file entry, at most *max_chars* characters.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not valid text.
        """

    @abstractmethod
    def children(self) -> Iterable[FolderEntry]:
        """Return the entries of a directory (empty for files)."""


class LocalEntry(FolderEntry):
    """Filesystem-backed entry. Files are decoded as strict UTF-8."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self.name = self._path.name or str(self._path)
        self.kind = DIRECTORY if self._path.is_dir() else FILE

    @property
    def path(self) -> str:
        return str(self._path)

    def read(self, max_chars: int | None = None) -> str:
        with self._path.open(encoding="utf-8") as fh:
            return fh.read() if max_chars is None else fh.read(max_chars)

    def children(self) -> list[LocalEntry]:
        if self.kind != DIRECTORY:
            return []
        return [LocalEntry(p) for p in sorted(self._path.iterdir())]


class TextFile(FolderEntry):
    """In-memory file with already-decoded content."""

    kind = FILE

    def __init__(self, name: str, content: str, parent: str = "") -> None:
        self.name = name
        self.content = content
        self._parent = parent

    @property
    def path(self) -> str:
        return f"{self._parent}/{self.name}" if self._parent else self.name

    def read(self, max_chars: int | None = None) -> str:
        return self.content if max_chars is None else self.content[:max_chars]

    def children(self) -> list[FolderEntry]:
        return []


class Directory(FolderEntry):
    """In-memory directory; ``files`` maps names to text or nested dicts."""

    kind = DIRECTORY

    def __init__(self, name: str, files: dict[str, str | dict] | None = None, parent: str = "") -> None:
        self.name = name
        self._files = files or {}
        self._parent = parent

    @property
    def path(self) -> str:
        return f"{self._parent}/{self.name}" if self._parent else self.name

    def read(self, max_chars: int | None = None) -> str:
        raise IsADirectoryError(self.path)

    def children(self) -> list[FolderEntry]:
        entries: list[FolderEntry] = []
        for name, value in sorted(self._files.items()):
            if isinstance(value, dict):
                entries.append(Directory(name, value, parent=self.path))
            else:
                entries.append(TextFile(name, value, parent=self.path))
        return entries


def open_folder(path: Path | str) -> LocalEntry:
    """Return the root entry for a local knowledge folder.

    Raises:
        IngestError: If *path* does not exist or is not a directory.
    """
    root = Path(path).expanduser()
    if not root.exists():
        raise IngestError(f"Knowledge folder not found: '{root}'")
    if not root.is_dir():
        raise IngestError(f"Knowledge folder is not a directory: '{root}'")
    return LocalEntry(root)
