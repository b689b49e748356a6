"""In-memory corpus built from a knowledge folder.

``ingest()`` walks the folder tree into a fresh ``CorpusIndex`` and returns
it only when the walk has finished. Callers replace their current index by
plain assignment, so a query never sees a half-built corpus and a cancelled
or failed walk leaves the previous index untouched.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Callable, Iterable, Iterator

from felicia.config import IngestCfg
from felicia.ingest.base import DIRECTORY, FILE, FolderEntry, IngestCancelled, IngestError
from felicia.models import Document

logger = logging.getLogger(__name__)


class CorpusIndex:
    """Immutable set of documents keyed by path."""

    def __init__(self, documents: Iterable[Document] = (), skipped: int = 0) -> None:
        self._docs: dict[str, Document] = {doc.path: doc for doc in documents}
        self.skipped = skipped

    @property
    def documents(self) -> list[Document]:
        """Documents ordered by path, so iteration order is deterministic."""
        return [self._docs[p] for p in sorted(self._docs)]

    def get(self, path: str) -> Document | None:
        return self._docs.get(path)

    def __len__(self) -> int:
        return len(self._docs)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __bool__(self) -> bool:
        return bool(self._docs)

    def __repr__(self) -> str:
        return f"CorpusIndex({len(self._docs)} documents)"


EMPTY_CORPUS = CorpusIndex()


def ingest(
    root: FolderEntry,
    config: IngestCfg | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> CorpusIndex:
    """Collect the text files under *root* into a new CorpusIndex.

    Hidden entries (names starting with '.') are skipped, files are filtered
    by extension, and content is truncated to ``config.max_chars``. Files that
    cannot be read or decoded are logged and skipped.

    Raises:
        IngestCancelled: If *should_cancel* returns True during the walk.
        IngestError: If the root itself cannot be listed.
    """
    cfg = config or IngestCfg()
    allowed = {ext.lower() for ext in cfg.extensions}
    documents: list[Document] = []
    skipped = 0

    try:
        top = list(root.children()) if root.kind == DIRECTORY else [root]
    except OSError as exc:
        raise IngestError(f"Cannot read knowledge folder '{root.path}': {exc}") from exc

    for entry in _walk(top, cfg.max_depth, depth=0, should_cancel=should_cancel):
        if PurePosixPath(entry.name).suffix.lower() not in allowed:
            continue
        try:
            content = entry.read(cfg.max_chars)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable file %s: %s", entry.path, exc)
            skipped += 1
            continue
        documents.append(
            Document(name=entry.name, path=entry.path, content=content[: cfg.max_chars])
        )

    logger.info("Ingested %d documents from %s (%d skipped)", len(documents), root.path, skipped)
    return CorpusIndex(documents, skipped=skipped)


def _walk(
    entries: Iterable[FolderEntry],
    max_depth: int,
    depth: int,
    should_cancel: Callable[[], bool] | None,
) -> Iterator[FolderEntry]:
    """Yield non-hidden file entries, descending at most *max_depth* levels."""
    for entry in entries:
        if should_cancel is not None and should_cancel():
            raise IngestCancelled("Ingestion cancelled")
        if entry.name.startswith("."):
            continue
        if entry.kind == FILE:
            yield entry
        elif entry.kind == DIRECTORY and depth < max_depth:
            try:
                children = list(entry.children())
            except OSError as exc:
                logger.warning("Skipping unreadable directory %s: %s", entry.path, exc)
                continue
            yield from _walk(children, max_depth, depth + 1, should_cancel)
