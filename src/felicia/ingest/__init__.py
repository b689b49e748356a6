"""Felicia ingest pipeline: folder handles and the in-memory corpus."""

from felicia.ingest.base import (
    Directory,
    FolderEntry,
    FolderSelectionCancelled,
    IngestCancelled,
    IngestError,
    LocalEntry,
    TextFile,
    open_folder,
)
from felicia.ingest.corpus import EMPTY_CORPUS, CorpusIndex, ingest

__all__ = [
    "CorpusIndex",
    "Directory",
    "EMPTY_CORPUS",
    "FolderEntry",
    "FolderSelectionCancelled",
    "IngestCancelled",
    "IngestError",
    "LocalEntry",
    "TextFile",
    "ingest",
    "open_folder",
]
