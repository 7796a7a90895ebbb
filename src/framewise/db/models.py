"""Domain models for the workflow corpus."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any


@dataclass
class WorkflowRecord:
    """A reusable consulting framework parsed from a source document.

    ``embedding`` is None until the Embed stage has produced a valid vector;
    records without one are never returned by search.
    """

    name: str
    domain: str
    sub_domain: str = "general"
    source_book: str = "Unknown Source"
    task_summary: str = ""
    full_prompt: str = ""
    key_questions: list[str] = field(default_factory=list)
    problem_patterns: list[str] = field(default_factory=list)
    synergy_triggers: list[str] = field(default_factory=list)
    complexity: str = "low"  # low | medium | high
    estimated_duration_min: int | None = None
    file_path: str = ""
    embedding: list[float] | None = None
    id: str | None = None  # set by the corpus on insert
    created_at: str | None = None

    @property
    def content_hash(self) -> str:
        """SHA-256 of ``full_prompt`` (used by the strict dedup key)."""
        return hashlib.sha256(self.full_prompt.encode("utf-8")).hexdigest()

    def dedup_key(self, strict: bool = False) -> tuple[str, ...]:
        """Key used by skip-existing loads.

        ``(name, domain)`` is approximate: two distinct workflows may share it.
        ``strict=True`` adds the content hash.
        """
        if strict:
            return (self.name, self.domain, self.content_hash)
        return (self.name, self.domain)

    def to_dict(self) -> dict[str, Any]:
        """Checkpoint representation (corpus-assigned fields omitted)."""
        return {
            "name": self.name,
            "domain": self.domain,
            "sub_domain": self.sub_domain,
            "source_book": self.source_book,
            "task_summary": self.task_summary,
            "full_prompt": self.full_prompt,
            "key_questions": list(self.key_questions),
            "problem_patterns": list(self.problem_patterns),
            "synergy_triggers": list(self.synergy_triggers),
            "complexity": self.complexity,
            "estimated_duration_min": self.estimated_duration_min,
            "file_path": self.file_path,
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowRecord:
        """Build a record from a checkpoint object.

        Raises:
            ValueError: If ``name`` or ``domain`` is missing.
        """
        if not data.get("name") or not data.get("domain"):
            raise ValueError("workflow record requires 'name' and 'domain'")
        embedding = data.get("embedding")
        return cls(
            name=str(data["name"]),
            domain=str(data["domain"]),
            sub_domain=str(data.get("sub_domain") or "general"),
            source_book=str(data.get("source_book") or "Unknown Source"),
            task_summary=str(data.get("task_summary", "")),
            full_prompt=str(data.get("full_prompt", "")),
            key_questions=list(data.get("key_questions") or []),
            problem_patterns=list(data.get("problem_patterns") or []),
            synergy_triggers=list(data.get("synergy_triggers") or []),
            complexity=str(data.get("complexity") or "low"),
            estimated_duration_min=data.get("estimated_duration_min"),
            file_path=str(data.get("file_path", "")),
            embedding=[float(v) for v in embedding] if embedding is not None else None,
        )
