"""Workflow corpus repository: bulk insert, similarity search, diagnostics.

Similarity search is an exact cosine scan using sqlite-vec's
``vec_distance_cosine()``; similarity = 1 - cosine distance. The corpus is in
the hundreds to low thousands of rows, so no ANN index is maintained.

The threshold is always supplied by the caller. Rows whose embedding is NULL
are never returned.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from framewise.db.models import WorkflowRecord
from framewise.db.vectors import EMBEDDING_DIMENSIONS, check_vector, serialize
from framewise.taxonomy import COMPLEXITIES, DOMAINS

_COLUMNS = (
    "id, name, domain, sub_domain, source_book, task_summary, full_prompt, "
    "key_questions, problem_patterns, synergy_triggers, complexity, "
    "estimated_duration_min, file_path, created_at"
)

_INSERT_SQL = """
INSERT INTO workflows (
    id, name, domain, sub_domain, source_book, task_summary, full_prompt,
    key_questions, problem_patterns, synergy_triggers, complexity,
    estimated_duration_min, file_path, content_hash, embedding
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


@dataclass
class InsertReport:
    """Outcome of a bulk insert.

    Attributes:
        inserted_ids: Corpus IDs of inserted records, in input order.
        failed: Number of records that were not inserted.
        errors: One message per rejected record or failed batch.
    """

    inserted_ids: list[str] = field(default_factory=list)
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return len(self.inserted_ids)


class WorkflowRepository:
    """Data access layer for the workflow corpus.

    Wraps an open sqlite3.Connection (sqlite-vec loaded, schema initialised).
    The connection is owned by the caller and must be closed after use.

    Args:
        conn: Open connection (see framewise.db.connection.Database).
        dimensions: Embedding dimensionality enforced on insert and search.
    """

    def __init__(self, conn: sqlite3.Connection, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        self._conn = conn
        self.dimensions = dimensions

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(
        self,
        records: list[WorkflowRecord],
        batch_size: int = 50,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> InsertReport:
        """Insert *records* in batches of *batch_size*, one transaction per batch.

        Invalid records (unknown domain or complexity, wrong dimensionality,
        zero vector) are counted as failed individually. A database error
        rolls back its batch and counts every record in it as failed. Later
        batches still run.

        Args:
            records: Records to insert. ``embedding=None`` is stored as NULL.
            batch_size: Records per transaction.
            on_batch: Called with (batch_number, total_batches) after each batch.

        Returns:
            InsertReport with inserted IDs and failure counts.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        report = InsertReport()
        total_batches = (len(records) + batch_size - 1) // batch_size

        for number, start in enumerate(range(0, len(records), batch_size), start=1):
            batch = records[start : start + batch_size]
            rows: list[tuple] = []
            for record in batch:
                try:
                    rows.append(self._to_row(record))
                except ValueError as exc:
                    report.failed += 1
                    report.errors.append(f"{record.name!r} ({record.domain}): {exc}")

            if rows:
                try:
                    self._conn.executemany(_INSERT_SQL, rows)
                    self._conn.commit()
                except sqlite3.Error as exc:
                    self._conn.rollback()
                    report.failed += len(rows)
                    report.errors.append(f"batch {number}/{total_batches}: {exc}")
                    logger.warning(f"Insert batch {number}/{total_batches} failed: {exc}")
                else:
                    report.inserted_ids.extend(row[0] for row in rows)

            logger.info(
                f"Insert batch {number}/{total_batches}: "
                f"{report.inserted} inserted, {report.failed} failed so far"
            )
            if on_batch is not None:
                on_batch(number, total_batches)

        return report

    def clear(self) -> int:
        """Delete every workflow. Returns the number of rows deleted."""
        cur = self._conn.execute("DELETE FROM workflows")
        self._conn.commit()
        logger.warning(f"Cleared workflow corpus ({cur.rowcount} rows)")
        return cur.rowcount

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query_vector: list[float],
        threshold: float,
        limit: int,
        domain_filter: Iterable[str] | None = None,
    ) -> list[tuple[WorkflowRecord, float]]:
        """Cosine similarity search, best first.

        Args:
            query_vector: Query embedding with the corpus dimensionality.
            threshold: Only rows with similarity strictly above this are returned.
            limit: Maximum number of rows.
            domain_filter: Restrict to these domains (a single name is accepted);
                None or empty = all domains.

        Returns:
            List of (record, similarity) sorted by similarity descending.
            Returned records do not carry their embedding.

        Raises:
            ValueError: If *query_vector* has the wrong length or is all zeros.
        """
        check_vector(query_vector, self.dimensions)
        if limit < 1:
            return []

        if isinstance(domain_filter, str):
            domain_filter = [domain_filter]
        domains = sorted(set(domain_filter)) if domain_filter else []
        # float32 blobs: 4 bytes per dimension. CASE keeps NULL / foreign-width
        # blobs away from vec_distance_cosine regardless of WHERE term order.
        blob_bytes = self.dimensions * 4
        params: list[Any] = [blob_bytes, serialize(query_vector), blob_bytes]
        domain_clause = ""
        if domains:
            domain_clause = f"AND domain IN ({','.join('?' * len(domains))})"
            params.extend(domains)
        params.extend([threshold, limit])

        logger.debug(
            f"Workflow search: threshold={threshold}, limit={limit}, domains={domains or 'all'}"
        )
        rows = self._conn.execute(
            f"""
            SELECT * FROM (
                SELECT {_COLUMNS},
                       CASE WHEN length(embedding) = ?
                            THEN 1.0 - vec_distance_cosine(embedding, ?)
                       END AS similarity
                FROM workflows
                WHERE embedding IS NOT NULL
                  AND length(embedding) = ?
                  {domain_clause}
            )
            WHERE similarity IS NOT NULL AND similarity > ?
            ORDER BY similarity DESC, name
            LIMIT ?
            """,
            params,
        ).fetchall()
        return [(_row_to_record(row), float(row["similarity"])) for row in rows]

    def match_workflows(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        filter_domains: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Read contract shared by every call site: rows of workflow fields + similarity."""
        results = self.search(query_embedding, match_threshold, match_count, filter_domains)
        rows: list[dict[str, Any]] = []
        for record, similarity in results:
            row = record.to_dict()
            row.pop("embedding")
            row["id"] = record.id
            row["similarity"] = similarity
            rows.append(row)
        return rows

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Total number of workflows."""
        return self._conn.execute("SELECT COUNT(*) FROM workflows").fetchone()[0]

    def count_by_domain(self) -> dict[str, int]:
        """Return {domain: count} for every domain present."""
        rows = self._conn.execute(
            "SELECT domain, COUNT(*) AS n FROM workflows GROUP BY domain ORDER BY domain"
        ).fetchall()
        return {r["domain"]: r["n"] for r in rows}

    def count_missing_embeddings(self) -> int:
        """Number of workflows stored without an embedding (excluded from search)."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM workflows WHERE embedding IS NULL"
        ).fetchone()[0]

    def count_sub_domains(self) -> dict[str, int]:
        """Number of distinct sub-domains per domain."""
        rows = self._conn.execute(
            "SELECT domain, COUNT(DISTINCT sub_domain) AS n FROM workflows GROUP BY domain"
        ).fetchall()
        return {r["domain"]: r["n"] for r in rows}

    def stored_dimensions(self) -> int | None:
        """Dimensionality of one stored embedding, or None if nothing is embedded."""
        row = self._conn.execute(
            "SELECT length(embedding) / 4 FROM workflows WHERE embedding IS NOT NULL LIMIT 1"
        ).fetchone()
        return row[0] if row else None

    def existing_keys(self, strict: bool = False) -> set[tuple[str, ...]]:
        """Return the dedup keys of every stored workflow (see WorkflowRecord.dedup_key)."""
        if strict:
            rows = self._conn.execute(
                "SELECT name, domain, content_hash FROM workflows"
            ).fetchall()
            return {(r["name"], r["domain"], r["content_hash"]) for r in rows}
        rows = self._conn.execute("SELECT name, domain FROM workflows").fetchall()
        return {(r["name"], r["domain"]) for r in rows}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_row(self, record: WorkflowRecord) -> tuple:
        if record.domain not in DOMAINS:
            raise ValueError(f"unknown domain '{record.domain}'")
        if record.complexity not in COMPLEXITIES:
            raise ValueError(f"unknown complexity '{record.complexity}'")
        if record.estimated_duration_min is not None and record.estimated_duration_min < 1:
            raise ValueError("estimated_duration_min must be positive")
        blob = None
        if record.embedding is not None:
            check_vector(record.embedding, self.dimensions)
            blob = serialize(record.embedding)
        return (
            str(uuid.uuid4()),
            record.name,
            record.domain,
            record.sub_domain,
            record.source_book,
            record.task_summary,
            record.full_prompt,
            json.dumps(record.key_questions),
            json.dumps(record.problem_patterns),
            json.dumps(record.synergy_triggers),
            record.complexity,
            record.estimated_duration_min,
            record.file_path,
            record.content_hash,
            blob,
        )


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_record(row: sqlite3.Row) -> WorkflowRecord:
    return WorkflowRecord(
        id=row["id"],
        name=row["name"],
        domain=row["domain"],
        sub_domain=row["sub_domain"],
        source_book=row["source_book"],
        task_summary=row["task_summary"],
        full_prompt=row["full_prompt"],
        key_questions=json.loads(row["key_questions"]),
        problem_patterns=json.loads(row["problem_patterns"]),
        synergy_triggers=json.loads(row["synergy_triggers"]),
        complexity=row["complexity"],
        estimated_duration_min=row["estimated_duration_min"],
        file_path=row["file_path"],
        created_at=row["created_at"],
    )
