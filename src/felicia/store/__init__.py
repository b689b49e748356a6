"""Felicia session persistence layer."""

from felicia.store.base import KeyValueStore, MemoryStore
from felicia.store.session import SessionStore
from felicia.store.sqlite import MIGRATIONS, SqliteStore, run_migrations

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SessionStore",
    "SqliteStore",
    "run_migrations",
    "MIGRATIONS",
]
