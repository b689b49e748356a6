"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from felicia.config import FeliciaConfig
from felicia.store.base import MemoryStore
from felicia.store.session import SessionStore
from felicia.store.sqlite import SqliteStore


@pytest.fixture
def session():
    """SessionStore over a fresh in-memory backend."""
    return SessionStore(MemoryStore())


@pytest.fixture
def sqlite_store(tmp_path):
    """File-based SqliteStore in tmp_path, closed after test."""
    store = SqliteStore(tmp_path / "session.db")
    yield store
    store.close()


@pytest.fixture
def fast_config():
    """Default config with onboarding pacing disabled."""
    cfg = FeliciaConfig()
    cfg.onboarding.turn_delay = 0.0
    return cfg


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolate CLI runs: no global config, no FELICIA_* env, fast onboarding.

    Returns the session store path the commands will use.
    """
    for var in ("FELICIA_MODEL", "FELICIA_API_BASE", "FELICIA_STORE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("felicia.config._GLOBAL_CONFIG_PATH", tmp_path / "global.yaml")
    monkeypatch.chdir(tmp_path)
    (tmp_path / "felicia.yaml").write_text(
        "completion:\n  model: ollama/llama3.2:3b\nonboarding:\n  turn_delay: 0\n",
        encoding="utf-8",
    )
    store_path = tmp_path / "session.db"
    monkeypatch.setenv("FELICIA_STORE", str(store_path))
    return store_path
