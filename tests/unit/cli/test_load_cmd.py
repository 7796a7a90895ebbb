"""Tests for framewise load."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from framewise.cli.common import open_db
from framewise.cli.main import app
from framewise.db.models import WorkflowRecord
from framewise.db.repository import WorkflowRepository
from framewise.ingest.checkpoint import write_checkpoint

runner = CliRunner()


def _embedded(project: Path, *extra: WorkflowRecord) -> Path:
    path = project / "processed" / "embedded.json"
    records = [
        WorkflowRecord(name="Churn Recovery", domain="marketing", task_summary="Churn.", embedding=[1.0, 0.0, 0.0]),
        WorkflowRecord(name="Pricing Ladder", domain="sales", task_summary="Pricing.", embedding=[0.0, 1.0, 0.0]),
        *extra,
    ]
    write_checkpoint(path, records)
    return path


def _count(db_path: Path) -> int:
    conn = open_db(db_path)
    try:
        return WorkflowRepository(conn, dimensions=3).count()
    finally:
        conn.close()


def test_load_inserts_records(project: Path) -> None:
    _embedded(project)
    result = runner.invoke(app, ["load", "--db", "corpus.db"])
    assert result.exit_code == 0, result.output
    assert "2 inserted" in result.output
    assert _count(project / "corpus.db") == 2


def test_load_uses_configured_db(project: Path) -> None:
    _embedded(project)
    result = runner.invoke(app, ["load"])
    assert result.exit_code == 0, result.output
    assert (project / ".framewise.db").exists()


def test_load_dry_run_writes_nothing(project: Path) -> None:
    _embedded(project)
    result = runner.invoke(app, ["load", "--db", "corpus.db", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "Dry run" in result.output
    assert "2 workflows would be loaded" in result.output
    assert not (project / "corpus.db").exists()


def test_load_skip_existing(project: Path) -> None:
    _embedded(project)
    runner.invoke(app, ["load", "--db", "corpus.db"])
    result = runner.invoke(app, ["load", "--db", "corpus.db", "--skip-existing"])
    assert result.exit_code == 0, result.output
    assert "2 already in corpus" in result.output
    assert _count(project / "corpus.db") == 2


def test_load_without_skip_duplicates(project: Path) -> None:
    _embedded(project)
    runner.invoke(app, ["load", "--db", "corpus.db"])
    runner.invoke(app, ["load", "--db", "corpus.db"])
    assert _count(project / "corpus.db") == 4


def test_load_clear_first(project: Path) -> None:
    _embedded(project)
    runner.invoke(app, ["load", "--db", "corpus.db"])
    result = runner.invoke(app, ["load", "--db", "corpus.db", "--clear-first"])
    assert result.exit_code == 0, result.output
    assert "Cleared 2" in result.output
    assert _count(project / "corpus.db") == 2


def test_load_excludes_unknown_and_unembedded(project: Path) -> None:
    _embedded(
        project,
        WorkflowRecord(name="Orphan", domain="unknown", task_summary="x", embedding=[1.0, 1.0, 0.0]),
        WorkflowRecord(name="Pending", domain="hr", task_summary="y"),
    )
    result = runner.invoke(app, ["load", "--db", "corpus.db"])
    assert result.exit_code == 0, result.output
    assert "domain 'unknown'" in result.output
    assert "no valid embedding" in result.output
    assert _count(project / "corpus.db") == 2


def test_load_missing_checkpoint_exits_1(project: Path) -> None:
    result = runner.invoke(app, ["load", "--input", "nope.json"])
    assert result.exit_code == 1
    assert "Checkpoint not found" in result.output


def test_load_malformed_checkpoint_exits_1(project: Path) -> None:
    bad = project / "bad.json"
    bad.write_text('{"name": "x"}', encoding="utf-8")
    result = runner.invoke(app, ["load", "--input", str(bad)])
    assert result.exit_code == 1
    assert "JSON array" in result.output
