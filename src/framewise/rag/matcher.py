"""Workflow matcher: problem text → best-matching consulting workflows.

Flow:
  1. Embed the problem text (truncated to MAX_EMBED_CHARS).
  2. Cosine search over the corpus, optionally restricted to domains.
  3. Return the rows in rank order, unmodified.

Matching is an enrichment, not a dependency: any failure (provider error,
timeout, corpus error) is logged and the caller gets an empty list.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from framewise.config import MatchProfile
from framewise.db.repository import WorkflowRepository
from framewise.rag.llm_client import MAX_EMBED_CHARS, EmbeddingProvider

NO_MATCHES_TEXT = "No specific workflows matched"


@dataclass
class WorkflowMatch:
    """A corpus workflow with its similarity to the problem text."""

    name: str
    domain: str
    task_summary: str
    full_prompt: str
    similarity: float
    key_questions: list[str] = field(default_factory=list)
    id: str | None = None


class WorkflowMatcher:
    """Semantic workflow search over a WorkflowRepository.

    Args:
        embedder: Embedding provider; must produce the corpus dimensionality.
        repository: Open corpus repository.
        threshold: Default similarity threshold when a call passes none.
        timeout: Default embedding request timeout in seconds.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        repository: WorkflowRepository,
        threshold: float = 0.65,
        timeout: float | None = None,
    ) -> None:
        self._embedder = embedder
        self._repo = repository
        self.threshold = threshold
        self.timeout = timeout

    def match(
        self,
        problem_text: str,
        domains: Iterable[str] | None = None,
        limit: int = 3,
        *,
        threshold: float | None = None,
        timeout: float | None = None,
    ) -> list[WorkflowMatch]:
        """Return up to *limit* workflows above the threshold, best first.

        Never raises; returns ``[]`` on empty input or any failure.
        """
        if not problem_text or not problem_text.strip():
            return []

        threshold = self.threshold if threshold is None else threshold
        timeout = self.timeout if timeout is None else timeout
        if isinstance(domains, str):
            domains = [domains]
        domain_list = list(domains) if domains else None

        try:
            vector = self._embedder.embed(problem_text[:MAX_EMBED_CHARS], timeout=timeout)
            rows = self._repo.match_workflows(
                vector,
                match_threshold=threshold,
                match_count=limit,
                filter_domains=domain_list,
            )
        except Exception as exc:  # noqa: BLE001 matching degrades to no results
            logger.warning(f"Workflow matching failed, continuing without workflows: {exc}")
            return []

        logger.debug(f"Matched {len(rows)} workflows (threshold={threshold}, limit={limit})")
        return [
            WorkflowMatch(
                id=row["id"],
                name=row["name"],
                domain=row["domain"],
                task_summary=row["task_summary"],
                full_prompt=row["full_prompt"],
                key_questions=row["key_questions"],
                similarity=row["similarity"],
            )
            for row in rows
        ]

    def match_profile(
        self,
        problem_text: str,
        profile: MatchProfile,
        domains: Iterable[str] | None = None,
    ) -> list[WorkflowMatch]:
        """match() with the threshold and limit of a configured call-site profile."""
        return self.match(problem_text, domains, profile.limit, threshold=profile.threshold)


def format_workflows_for_prompt(matches: list[WorkflowMatch]) -> str:
    """Render matches as ``"{name}: {task_summary}"`` lines for prompt templates."""
    if not matches:
        return NO_MATCHES_TEXT
    return "\n".join(f"{m.name}: {m.task_summary}" for m in matches)
