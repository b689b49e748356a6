"""Felicia configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (FELICIA_MODEL, FELICIA_API_BASE, FELICIA_STORE)
  3. Per-project felicia.yaml  (current working directory)
  4. Global ~/.felicia/config.yaml  (no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".felicia"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "felicia.yaml"

# Matches api_key, apikey, api-key, api_secret, *_token, token, *_secret,
# secret, password, passwd, credential(s). Not max_tokens or history_window.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["completion", "retrieval", "ingest", "context", "onboarding", "store"]
)

_DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".txt", ".md", ".markdown", ".rst", ".text", ".csv", ".log", ".json", ".org",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class CompletionCfg:
    """Language-model backend (felicia.yaml: completion:).

    Attributes:
        model: LiteLLM model string in 'provider/model' format.
        api_base: Backend base URL; None lets LiteLLM use the provider default
            (http://localhost:11434 for ollama).
        temperature: Sampling temperature.
        top_p: Nucleus-sampling threshold.
    """

    model: str = "ollama/llama3.2:3b"
    api_base: str | None = None
    temperature: float = 0.7
    top_p: float = 0.9


@dataclass
class RetrievalCfg:
    """Keyword retrieval (felicia.yaml: retrieval:)."""

    limit: int = 3
    snippet_chars: int = 500


@dataclass
class IngestCfg:
    """Knowledge folder ingestion (felicia.yaml: ingest:)."""

    max_chars: int = 50_000
    max_depth: int = 10
    extensions: tuple[str, ...] = _DEFAULT_EXTENSIONS


@dataclass
class ContextCfg:
    """Prompt assembly (felicia.yaml: context:)."""

    history_window: int = 10


@dataclass
class OnboardingCfg:
    """Onboarding pacing (felicia.yaml: onboarding:)."""

    turn_delay: float = 0.5


@dataclass
class StoreCfg:
    """Session persistence (felicia.yaml: store:)."""

    path: str = str(_GLOBAL_CONFIG_DIR / "session.db")


@dataclass
class FeliciaConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    completion: CompletionCfg = field(default_factory=CompletionCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    context: ContextCfg = field(default_factory=ContextCfg)
    onboarding: OnboardingCfg = field(default_factory=OnboardingCfg)
    store: StoreCfg = field(default_factory=StoreCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: FeliciaConfig) -> None:
    """Raise ConfigError for values outside their usable range."""
    if cfg.retrieval.limit < 1:
        raise ConfigError("retrieval.limit must be >= 1")
    if cfg.retrieval.snippet_chars < 1:
        raise ConfigError("retrieval.snippet_chars must be >= 1")
    if cfg.ingest.max_chars < 1:
        raise ConfigError("ingest.max_chars must be >= 1")
    if cfg.ingest.max_depth < 0:
        raise ConfigError("ingest.max_depth must be >= 0")
    if cfg.context.history_window < 0:
        raise ConfigError("context.history_window must be >= 0")
    if cfg.onboarding.turn_delay < 0:
        raise ConfigError("onboarding.turn_delay must be >= 0")
    if not 0.0 <= cfg.completion.top_p <= 1.0:
        raise ConfigError("completion.top_p must be in [0.0, 1.0]")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _parse_extensions(raw: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if raw is None:
        return default
    if isinstance(raw, str):
        raw = [raw]
    exts = []
    for ext in raw:
        ext = str(ext).strip().lower()
        if ext and not ext.startswith("."):
            ext = "." + ext
        if ext:
            exts.append(ext)
    return tuple(exts)


def _cfg_from_dict(data: dict[str, Any]) -> FeliciaConfig:
    """Build a *FeliciaConfig* from a merged raw YAML dict."""
    cfg = FeliciaConfig()

    try:
        if "completion" in data:
            c = data["completion"] or {}
            cfg.completion = CompletionCfg(
                model=str(c.get("model", cfg.completion.model)),
                api_base=c.get("api_base", cfg.completion.api_base),
                temperature=float(c.get("temperature", cfg.completion.temperature)),
                top_p=float(c.get("top_p", cfg.completion.top_p)),
            )

        if "retrieval" in data:
            r = data["retrieval"] or {}
            cfg.retrieval = RetrievalCfg(
                limit=int(r.get("limit", cfg.retrieval.limit)),
                snippet_chars=int(r.get("snippet_chars", cfg.retrieval.snippet_chars)),
            )

        if "ingest" in data:
            i = data["ingest"] or {}
            cfg.ingest = IngestCfg(
                max_chars=int(i.get("max_chars", cfg.ingest.max_chars)),
                max_depth=int(i.get("max_depth", cfg.ingest.max_depth)),
                extensions=_parse_extensions(i.get("extensions"), cfg.ingest.extensions),
            )

        if "context" in data:
            ctx = data["context"] or {}
            cfg.context = ContextCfg(
                history_window=int(ctx.get("history_window", cfg.context.history_window)),
            )

        if "onboarding" in data:
            o = data["onboarding"] or {}
            cfg.onboarding = OnboardingCfg(
                turn_delay=float(o.get("turn_delay", cfg.onboarding.turn_delay)),
            )

        if "store" in data:
            s = data["store"] or {}
            cfg.store = StoreCfg(path=str(s.get("path", cfg.store.path)))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: FeliciaConfig) -> FeliciaConfig:
    """Apply FELICIA_* environment variable overrides."""
    if model := os.environ.get("FELICIA_MODEL"):
        cfg.completion.model = model
    if api_base := os.environ.get("FELICIA_API_BASE"):
        cfg.completion.api_base = api_base
    if store := os.environ.get("FELICIA_STORE"):
        cfg.store.path = store
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FeliciaConfig:
    """Load and return a merged *FeliciaConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *felicia.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FeliciaConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or if a
            value is malformed or out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)

    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.felicia/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Felicia global configuration: model defaults only.\n"
            "# NEVER store API keys here; use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "completion:\n"
            "  model: ollama/llama3.2:3b\n"
            "  temperature: 0.7\n"
            "  top_p: 0.9\n"
            "\n"
            "context:\n"
            "  history_window: 10\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
