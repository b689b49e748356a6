"""SQLite-backed key/value store with a forward-only migration runner.

One ``kv`` table holds every namespace; values are stored as JSON text.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from felicia.store.base import KeyValueStore

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    namespace   TEXT NOT NULL,
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,
    updated_at  DATETIME NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (namespace, key)
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Open (or create) the session database and run migrations."""
    path = Path(db_path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    run_migrations(conn)
    return conn


class SqliteStore(KeyValueStore):
    """Key/value store persisted to a SQLite file.

    Owns its connection; call ``close()`` (or use as a context manager) when
    finished.
    """

    def __init__(self, db_path: Path | str, namespace: str = "felicia") -> None:
        super().__init__(namespace)
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = connect(self.db_path)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Store '{self.db_path}' is closed")
        return self._conn

    def get(self, key: str, default: Any = None) -> Any:
        row = self.conn.execute(
            "SELECT value FROM kv WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        ).fetchone()
        if row is None:
            return default
        return json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        self.conn.execute(
            """
            INSERT INTO kv (namespace, key, value) VALUES (?, ?, ?)
            ON CONFLICT (namespace, key)
            DO UPDATE SET value = excluded.value, updated_at = datetime('now')
            """,
            (self.namespace, key, json.dumps(value)),
        )
        self.conn.commit()

    def delete(self, key: str) -> None:
        self.conn.execute(
            "DELETE FROM kv WHERE namespace = ? AND key = ?", (self.namespace, key)
        )
        self.conn.commit()

    def clear(self) -> None:
        self.conn.execute("DELETE FROM kv WHERE namespace = ?", (self.namespace,))
        self.conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
