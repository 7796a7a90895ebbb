"""Load stage — insert embedded workflows into the corpus.

Records are excluded before insert when they:
  - have no embedding (never stored; they would be invisible to search)
  - are tagged ``unknown`` (need manual domain triage)
  - already exist, when skip-existing is on (dedup key, see
    WorkflowRecord.dedup_key)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from framewise.db.models import WorkflowRecord
from framewise.db.repository import WorkflowRepository
from framewise.taxonomy import UNKNOWN_DOMAIN


@dataclass
class LoadPlan:
    to_insert: list[WorkflowRecord] = field(default_factory=list)
    skipped_existing: list[WorkflowRecord] = field(default_factory=list)
    missing_embedding: list[WorkflowRecord] = field(default_factory=list)
    needs_triage: list[WorkflowRecord] = field(default_factory=list)

    def domain_counts(self) -> dict[str, int]:
        return dict(Counter(r.domain for r in self.to_insert))


@dataclass
class LoadReport:
    """Outcome of a load.

    Attributes:
        plan: What was (or, in a dry run, would be) inserted and skipped.
        cleared: Rows deleted by clear-first.
        inserted: Rows written.
        failed: Records rejected by the corpus.
        errors: Messages for rejected records and failed batches.
        dry_run: True if nothing was written.
    """

    plan: LoadPlan
    cleared: int = 0
    inserted: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False


class WorkflowLoader:
    """Plan and execute corpus loads against a WorkflowRepository."""

    def __init__(self, repository: WorkflowRepository, batch_size: int = 50) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._repo = repository
        self.batch_size = batch_size

    def plan(
        self,
        records: list[WorkflowRecord],
        skip_existing: bool = False,
        clear_first: bool = False,
        strict_dedup: bool = False,
    ) -> LoadPlan:
        """Decide which records would be inserted. Reads the corpus, never writes."""
        plan = LoadPlan()
        dedup = skip_existing and not clear_first
        seen = self._repo.existing_keys(strict=strict_dedup) if dedup else set()

        for record in records:
            if record.domain == UNKNOWN_DOMAIN:
                plan.needs_triage.append(record)
            elif record.embedding is None:
                plan.missing_embedding.append(record)
            elif dedup and record.dedup_key(strict_dedup) in seen:
                plan.skipped_existing.append(record)
            else:
                if dedup:
                    seen.add(record.dedup_key(strict_dedup))
                plan.to_insert.append(record)
        return plan

    def load(
        self,
        records: list[WorkflowRecord],
        *,
        clear_first: bool = False,
        skip_existing: bool = False,
        dry_run: bool = False,
        strict_dedup: bool = False,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> LoadReport:
        plan = self.plan(
            records,
            skip_existing=skip_existing,
            clear_first=clear_first,
            strict_dedup=strict_dedup,
        )
        if plan.needs_triage:
            logger.warning(f"{len(plan.needs_triage)} records have domain 'unknown' and were excluded")
        if plan.missing_embedding:
            logger.warning(f"{len(plan.missing_embedding)} records have no embedding and were excluded")

        report = LoadReport(plan=plan, dry_run=dry_run)
        if dry_run:
            return report

        if clear_first:
            report.cleared = self._repo.clear()

        inserted = self._repo.insert(plan.to_insert, batch_size=self.batch_size, on_batch=on_batch)
        report.inserted = inserted.inserted
        report.failed = inserted.failed
        report.errors = inserted.errors
        return report
