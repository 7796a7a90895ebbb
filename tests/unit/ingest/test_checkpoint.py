"""Tests for JSON checkpoints between pipeline stages."""

from __future__ import annotations

import json

import pytest

from framewise.db.models import WorkflowRecord
from framewise.ingest.checkpoint import CheckpointError, read_checkpoint, write_checkpoint


def test_write_creates_parent_dirs_and_array(tmp_path):
    path = tmp_path / "processed" / "parsed.json"
    write_checkpoint(path, [WorkflowRecord(name="A", domain="hr")])
    data = json.loads(path.read_text(encoding="utf-8"))
    assert isinstance(data, list)
    assert data[0]["name"] == "A"
    assert data[0]["embedding"] is None


def test_round_trip(tmp_path):
    records = [
        WorkflowRecord(name="A", domain="hr", key_questions=["Why?"], embedding=[0.5, 1.0]),
        WorkflowRecord(name="B — ü", domain="unknown"),
    ]
    path = tmp_path / "embedded.json"
    write_checkpoint(path, records)
    assert read_checkpoint(path) == records


def test_write_empty(tmp_path):
    path = tmp_path / "empty.json"
    write_checkpoint(path, [])
    assert read_checkpoint(path) == []


def test_missing_file(tmp_path):
    with pytest.raises(CheckpointError, match="not found"):
        read_checkpoint(tmp_path / "nope.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(CheckpointError, match="Invalid JSON"):
        read_checkpoint(path)


def test_non_array(tmp_path):
    path = tmp_path / "obj.json"
    path.write_text('{"name": "A"}', encoding="utf-8")
    with pytest.raises(CheckpointError, match="JSON array"):
        read_checkpoint(path)


def test_entry_without_domain(tmp_path):
    path = tmp_path / "partial.json"
    path.write_text('[{"name": "A"}]', encoding="utf-8")
    with pytest.raises(CheckpointError, match="entry 0"):
        read_checkpoint(path)
