"""Embed stage — batch embedding of parsed workflows with rate-limit backoff.

What is embedded per record::

    {task_summary}

    Problem patterns:
    {pattern 1}
    {pattern 2}

truncated to MAX_EMBED_CHARS. A rate-limited batch is retried after
``rate_limit_wait`` seconds until it succeeds; any other provider error
propagates and stops the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from framewise.db.models import WorkflowRecord
from framewise.db.vectors import EMBEDDING_DIMENSIONS
from framewise.rag.llm_client import MAX_EMBED_CHARS, EmbeddingProvider, RateLimitedError


class EmbeddingError(RuntimeError):
    """The provider returned a response that cannot be matched to its inputs."""


def build_embedding_text(record: WorkflowRecord) -> str:
    text = record.task_summary
    if record.problem_patterns:
        text += "\n\nProblem patterns:\n" + "\n".join(record.problem_patterns)
    return text[:MAX_EMBED_CHARS]


@dataclass
class EmbedReport:
    """Records in input order plus those whose vector was rejected."""

    records: list[WorkflowRecord] = field(default_factory=list)
    invalid: list[WorkflowRecord] = field(default_factory=list)

    @property
    def embedded(self) -> int:
        return sum(1 for r in self.records if r.embedding is not None)


class EmbeddingStage:
    """Attach embeddings to records, one provider request per batch.

    Args:
        embedder: Provider implementing ``embed_many``.
        batch_size: Records per request.
        dimensions: Expected vector length; other lengths are rejected.
        rate_limit_wait: Seconds to wait before retrying a rate-limited batch.
        batch_delay: Seconds to pause between successful batches.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        batch_size: int = 20,
        dimensions: int = EMBEDDING_DIMENSIONS,
        rate_limit_wait: float = 60.0,
        batch_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._embedder = embedder
        self.batch_size = batch_size
        self.dimensions = dimensions
        self.rate_limit_wait = rate_limit_wait
        self.batch_delay = batch_delay
        self._sleep = sleep

    def run(
        self,
        records: list[WorkflowRecord],
        on_batch: Callable[[int, int], None] | None = None,
    ) -> EmbedReport:
        """Embed every record in place and return the report.

        Raises:
            EmbeddingError: If a response does not hold one vector per input.
        """
        report = EmbedReport(records=records)
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size

        for number, start in enumerate(range(0, len(records), self.batch_size), start=1):
            batch = records[start : start + self.batch_size]
            vectors = self._embed_batch([build_embedding_text(r) for r in batch], number, total_batches)
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"batch {number}/{total_batches}: sent {len(batch)} texts, "
                    f"received {len(vectors)} embeddings"
                )

            for record, vector in zip(batch, vectors):
                if vector is None or len(vector) != self.dimensions:
                    logger.warning(
                        f"Rejected embedding for '{record.name}': expected "
                        f"{self.dimensions} dims, got {0 if vector is None else len(vector)}"
                    )
                    record.embedding = None
                    report.invalid.append(record)
                else:
                    record.embedding = [float(v) for v in vector]

            logger.info(f"Embedded batch {number}/{total_batches}")
            if on_batch is not None:
                on_batch(number, total_batches)
            if number < total_batches and self.batch_delay > 0:
                self._sleep(self.batch_delay)

        return report

    def _embed_batch(self, texts: list[str], number: int, total: int) -> list[list[float]]:
        while True:
            try:
                return self._embedder.embed_many(texts)
            except RateLimitedError:
                logger.warning(
                    f"Rate limited on batch {number}/{total}; "
                    f"retrying in {self.rate_limit_wait:g}s"
                )
                self._sleep(self.rate_limit_wait)
