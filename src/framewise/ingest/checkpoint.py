"""JSON checkpoints written between pipeline stages (parsed.json, embedded.json)."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from framewise.db.models import WorkflowRecord


class CheckpointError(Exception):
    """A checkpoint file is missing, unreadable, or malformed."""


def write_checkpoint(path: Path, records: list[WorkflowRecord]) -> None:
    """Write *records* as one complete JSON array, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record.to_dict() for record in records]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Wrote {len(records)} records to {path}")


def read_checkpoint(path: Path) -> list[WorkflowRecord]:
    """Read a checkpoint written by :func:`write_checkpoint`.

    Raises:
        CheckpointError: If the file is missing, is not valid JSON, is not a
            JSON array, or contains an entry that is not a workflow record.
    """
    path = Path(path)
    if not path.is_file():
        raise CheckpointError(f"Checkpoint not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise CheckpointError(f"Cannot read checkpoint {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CheckpointError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, list):
        raise CheckpointError(f"Checkpoint {path} must contain a JSON array")

    records: list[WorkflowRecord] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise CheckpointError(f"Checkpoint {path}: entry {index} is not an object")
        try:
            records.append(WorkflowRecord.from_dict(item))
        except (TypeError, ValueError) as exc:
            raise CheckpointError(f"Checkpoint {path}: entry {index}: {exc}") from exc
    return records
