"""Framewise configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (FRAMEWISE_EMBEDDING_MODEL, FRAMEWISE_CLASSIFIER_MODEL,
                             FRAMEWISE_DB)
  3. Per-project framewise.yaml
  4. Global ~/.framewise/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".framewise"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "framewise.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # access_token, service_role_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "classifier", "corpus", "matching"]
)

_PROFILE_NAMES: tuple[str, ...] = ("conversation", "document", "search", "diagnostic")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model and ingestion batching (framewise.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 20
    rate_limit_wait: float = 60.0
    batch_delay: float = 0.5
    request_timeout: float = 10.0


@dataclass
class ClassifierCfg:
    """Completion model used by the classifier (framewise.yaml: classifier:)."""

    model: str = "anthropic/claude-3-5-haiku-20241022"
    max_tokens: int = 1024
    timeout: float = 20.0


@dataclass
class CorpusCfg:
    """Workflow corpus location and load batching (framewise.yaml: corpus:)."""

    db: str = ".framewise.db"
    load_batch_size: int = 50


@dataclass
class MatchProfile:
    """Similarity threshold and result count for one call site.

    Attributes:
        threshold: Minimum cosine similarity (exclusive) for a match.
        limit: Maximum number of matches returned.
    """

    threshold: float
    limit: int


@dataclass
class MatchingCfg:
    """Per-call-site match profiles (framewise.yaml: matching:).

    conversation favours recall, search favours precision, diagnostic is
    deliberately loose for inspecting the corpus.
    """

    conversation: MatchProfile = field(default_factory=lambda: MatchProfile(0.65, 3))
    document: MatchProfile = field(default_factory=lambda: MatchProfile(0.65, 4))
    search: MatchProfile = field(default_factory=lambda: MatchProfile(0.70, 3))
    diagnostic: MatchProfile = field(default_factory=lambda: MatchProfile(0.5, 5))

    def profile(self, name: str) -> MatchProfile:
        """Return the profile called *name*.

        Raises:
            ConfigError: If *name* is not a known profile.
        """
        if name not in _PROFILE_NAMES:
            raise ConfigError(
                f"Unknown match profile '{name}'. "
                f"Expected one of: {', '.join(_PROFILE_NAMES)}"
            )
        return getattr(self, name)


@dataclass
class FramewiseConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    classifier: ClassifierCfg = field(default_factory=ClassifierCfg)
    corpus: CorpusCfg = field(default_factory=CorpusCfg)
    matching: MatchingCfg = field(default_factory=MatchingCfg)


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
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _check_threshold(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ConfigError(
            f"matching.{name}.threshold must be between 0 and 1, got {value}"
        )
    return value


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


def _parse_profile(name: str, raw: dict[str, Any], defaults: MatchProfile) -> MatchProfile:
    return MatchProfile(
        threshold=_check_threshold(name, float(raw.get("threshold", defaults.threshold))),
        limit=int(raw.get("limit", defaults.limit)),
    )


def _cfg_from_dict(data: dict[str, Any]) -> FramewiseConfig:
    """Build a *FramewiseConfig* from a merged raw YAML dict."""
    cfg = FramewiseConfig()

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            rate_limit_wait=float(e.get("rate_limit_wait", cfg.embedding.rate_limit_wait)),
            batch_delay=float(e.get("batch_delay", cfg.embedding.batch_delay)),
            request_timeout=float(e.get("request_timeout", cfg.embedding.request_timeout)),
        )

    if "classifier" in data:
        c = data["classifier"]
        cfg.classifier = ClassifierCfg(
            model=str(c.get("model", cfg.classifier.model)),
            max_tokens=int(c.get("max_tokens", cfg.classifier.max_tokens)),
            timeout=float(c.get("timeout", cfg.classifier.timeout)),
        )

    if "corpus" in data:
        co = data["corpus"]
        cfg.corpus = CorpusCfg(
            db=str(co.get("db", cfg.corpus.db)),
            load_batch_size=int(co.get("load_batch_size", cfg.corpus.load_batch_size)),
        )

    if "matching" in data:
        m = data["matching"]
        profiles = {
            name: _parse_profile(name, m.get(name) or {}, cfg.matching.profile(name))
            for name in _PROFILE_NAMES
        }
        cfg.matching = MatchingCfg(**profiles)

    return cfg


def _apply_env_overrides(cfg: FramewiseConfig) -> FramewiseConfig:
    """Apply FRAMEWISE_* environment variable overrides (layer 2)."""
    if model := os.environ.get("FRAMEWISE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("FRAMEWISE_CLASSIFIER_MODEL"):
        cfg.classifier.model = model
    if db := os.environ.get("FRAMEWISE_DB"):
        cfg.corpus.db = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FramewiseConfig:
    """Load and return a merged *FramewiseConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *framewise.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FramewiseConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            match threshold lies outside [0, 1].
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
