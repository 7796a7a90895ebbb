"""Fixtures for CLI tests: an isolated project directory and fake providers."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from framewise.cli import common

CLASSIFICATION_ANSWER = (
    '{"symptoms": ["customers leaving"], "challenges": ["value unclear"], '
    '"primary_domain": "marketing", "secondary_domains": ["sales"], '
    '"intent": "decide", "confidence": 0.8}'
)


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """cwd = tmp_path, no global config, 3-dimensional embeddings, fake API keys."""
    monkeypatch.setattr("framewise.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("FRAMEWISE_EMBEDDING_MODEL", "FRAMEWISE_CLASSIFIER_MODEL", "FRAMEWISE_DB"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
    monkeypatch.chdir(tmp_path)
    (tmp_path / "framewise.yaml").write_text(
        yaml.dump({"embedding": {"dimensions": 3, "batch_delay": 0, "rate_limit_wait": 0}}),
        encoding="utf-8",
    )
    # Wide console so assertions do not depend on line wrapping.
    monkeypatch.setattr(common.console, "width", 200)
    return tmp_path


@pytest.fixture
def providers(monkeypatch, embedder_factory, completer_factory) -> SimpleNamespace:
    """Replace the LiteLLM providers built by the CLI with in-memory fakes."""
    fakes = SimpleNamespace(
        embedder=embedder_factory(dimensions=3),
        completer=completer_factory(answer=CLASSIFICATION_ANSWER),
    )
    monkeypatch.setattr("framewise.cli.common.LiteLLMEmbedder", lambda **kwargs: fakes.embedder)
    monkeypatch.setattr("framewise.cli.common.LiteLLMCompleter", lambda **kwargs: fakes.completer)
    return fakes


@pytest.fixture
def workflows_dir(project: Path) -> Path:
    """Two domain folders with one workflow document each."""
    marketing = project / "workflows" / "marketing"
    sales = project / "workflows" / "sales"
    marketing.mkdir(parents=True)
    sales.mkdir(parents=True)
    (marketing / "retention.md").write_text(
        "__Churn Recovery__\n"
        "# TASK\n"
        "Diagnose why customer churn is rising and build a churn recovery plan for this quarter.\n"
        "# STEP 1\n"
        "List the lost accounts.\n",
        encoding="utf-8",
    )
    (sales / "tiers.md").write_text(
        "__Pricing Ladder__\n"
        "# TASK\n"
        "Design a pricing ladder with clear tiers so buyers can pick the right pricing option.\n"
        "# STEP 1\n"
        "List the tiers.\n",
        encoding="utf-8",
    )
    return project / "workflows"
