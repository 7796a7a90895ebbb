"""Tests for framewise rich error messages."""

from __future__ import annotations

import pytest

from framewise.cli.errors import (
    err_checkpoint,
    err_classification,
    err_config,
    err_no_api_key,
    err_no_db,
    err_no_documents,
    err_no_records_parsed,
    err_output_write,
    err_source_dir_missing,
    warn_missing_embeddings,
    warn_unknown_domains,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _has_action(msg: str) -> bool:
    """Every error must tell the user what to do next."""
    lower = msg.lower()
    return any(
        kw in lower
        for kw in ["run:", "run with", "re-run", "framewise ", "pass ", "fix ", "move ", "check ", "set the", "organise"]
    )


@pytest.mark.parametrize(
    "msg",
    [
        err_no_api_key("openai/text-embedding-3-small", "Set the OPENAI_API_KEY environment variable."),
        err_config("bad threshold"),
        err_source_dir_missing("workflows"),
        err_no_documents("workflows"),
        err_no_records_parsed(3),
        err_checkpoint("Checkpoint not found: parsed.json"),
        err_output_write("out.json", "Permission denied"),
        err_no_db(),
        err_classification("invalid JSON"),
        warn_unknown_domains(2),
        warn_missing_embeddings(2),
    ],
)
def test_every_message_is_actionable(msg: str) -> None:
    assert _has_action(msg), msg


def test_err_no_api_key_contains_model_and_detail() -> None:
    msg = err_no_api_key("anthropic/claude-3-5-haiku-20241022", "Set ANTHROPIC_API_KEY")
    assert "anthropic/claude-3-5-haiku-20241022" in msg
    assert "ANTHROPIC_API_KEY" in msg


def test_err_no_db_contains_path_and_pipeline_hint() -> None:
    msg = err_no_db("data/corpus.db")
    assert "data/corpus.db" in msg
    assert "framewise pipeline" in msg


def test_err_no_documents_lists_supported_formats() -> None:
    msg = err_no_documents("workflows")
    for ext in (".docx", ".md", ".txt"):
        assert ext in msg


def test_err_no_records_parsed_mentions_task_marker() -> None:
    assert "# TASK" in err_no_records_parsed(4)


def test_warn_unknown_domains_lists_domains() -> None:
    msg = warn_unknown_domains(5)
    assert "5 workflow(s)" in msg
    for domain in ("strategy", "marketing", "sales", "operations", "innovation", "hr", "finance"):
        assert domain in msg


def test_warn_missing_embeddings_suggests_embed() -> None:
    assert "framewise embed" in warn_missing_embeddings(1)
