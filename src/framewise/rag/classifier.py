"""Problem classifier — maps a free-text business problem onto the taxonomy.

One completion call per problem. The model answers in JSON; the answer is
validated field by field and anything off-schema raises ClassificationError.
Callers that must not fail use ``classify_or_default``.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any

from loguru import logger

from framewise.rag.llm_client import CompletionProvider
from framewise.taxonomy import INTENTS, normalize_domain

CLASSIFICATION_PROMPT = """\
You are a business problem classifier. Analyze the user's problem and classify \
it using this 4-layer taxonomy.

LAYER 1 - SYMPTOMS (surface-level user language):
- Growth: revenue flat, not growing, lost market share
- Efficiency: costs high, taking too long, can't keep up
- People: can't hire, high turnover, team underperforming
- Market: competitors winning, customers leaving, not differentiated
- Financial: not profitable, cash flow issues, margins shrinking

LAYER 2 - CHALLENGES (root causes):
- Channel inefficiency, targeting mismatch, value prop unclear
- Employer brand weak, compensation misaligned
- Differentiation gap, speed disadvantage
- Process inefficiency, scale disadvantages
- Culture misalignment, management gaps

LAYER 3 - DOMAINS (use exactly these lower-case names):
- strategy, marketing, sales, operations, innovation, hr, finance

LAYER 4 - INTENT (use exactly these lower-case names):
- explore: understand options (analysis-heavy output)
- decide: choose between alternatives (recommendation-focused)
- execute: implement a path (action-heavy, detailed roadmap)
- monitor: track progress (metrics-focused)

Respond with JSON only, no prose:
{
  "symptoms": ["symptom1", "symptom2"],
  "challenges": ["challenge1", "challenge2"],
  "primary_domain": "domain",
  "secondary_domains": ["domain1", "domain2"],
  "intent": "decide",
  "confidence": 0.85
}"""

_REQUIRED_FIELDS = ("symptoms", "challenges", "primary_domain", "intent", "confidence")
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class ClassificationError(Exception):
    """The problem could not be classified (provider failure or invalid output)."""


@dataclass
class ClassificationResult:
    symptoms: list[str] = field(default_factory=list)
    challenges: list[str] = field(default_factory=list)
    primary_domain: str | None = None
    secondary_domains: list[str] = field(default_factory=list)
    intent: str | None = None
    confidence: float = 0.0

    @classmethod
    def empty(cls) -> ClassificationResult:
        """Default used when classification fails: no domains, no intent, zero confidence."""
        return cls()

    @property
    def domains(self) -> list[str]:
        """Primary then secondary domains, de-duplicated, order preserved."""
        ordered = [self.primary_domain, *self.secondary_domains]
        return list(dict.fromkeys(d for d in ordered if d))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def strip_code_fences(text: str) -> str:
    """Return the body of the first ```json ... ``` block, or *text* stripped.

    Prose before or after the fenced block is ignored.
    """
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def _load_json(text: str) -> object:
    body = strip_code_fences(text)
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        # Unfenced object wrapped in prose: first "{" to last "}".
        start, end = body.find("{"), body.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(body[start : end + 1])


def parse_classification(text: str) -> ClassificationResult:
    """Validate a model answer and build a ClassificationResult.

    Raises:
        ClassificationError: On invalid JSON or any schema violation.
    """
    try:
        data = _load_json(text)
    except json.JSONDecodeError as exc:
        raise ClassificationError(f"Classifier returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ClassificationError("Classifier output must be a JSON object")

    missing = [name for name in _REQUIRED_FIELDS if name not in data]
    if missing:
        raise ClassificationError(f"Classifier output missing fields: {', '.join(missing)}")

    primary = normalize_domain(_require_str(data, "primary_domain"))
    if primary is None:
        raise ClassificationError(f"Unknown primary_domain: {data['primary_domain']!r}")

    secondary: list[str] = []
    for value in _require_str_list(data, "secondary_domains", required=False):
        domain = normalize_domain(value)
        if domain is None:
            raise ClassificationError(f"Unknown secondary domain: {value!r}")
        if domain != primary and domain not in secondary:
            secondary.append(domain)

    intent = _require_str(data, "intent").strip().lower()
    if intent not in INTENTS:
        raise ClassificationError(f"Unknown intent: {data['intent']!r}")

    confidence = data["confidence"]
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ClassificationError("confidence must be a number")
    if not 0.0 <= confidence <= 1.0:
        raise ClassificationError(f"confidence must be in [0, 1], got {confidence}")

    return ClassificationResult(
        symptoms=_require_str_list(data, "symptoms"),
        challenges=_require_str_list(data, "challenges"),
        primary_domain=primary,
        secondary_domains=secondary,
        intent=intent,
        confidence=float(confidence),
    )


def _require_str(data: dict[str, Any], name: str) -> str:
    value = data[name]
    if not isinstance(value, str):
        raise ClassificationError(f"{name} must be a string")
    return value


def _require_str_list(data: dict[str, Any], name: str, required: bool = True) -> list[str]:
    value = data.get(name)
    if value is None and not required:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ClassificationError(f"{name} must be a list of strings")
    return value


class Classifier:
    """Classify business problems with one completion call each.

    Args:
        completer: Completion provider (see framewise.rag.llm_client).
        instructions: System instructions; defaults to CLASSIFICATION_PROMPT.
    """

    def __init__(self, completer: CompletionProvider, instructions: str = CLASSIFICATION_PROMPT) -> None:
        self._completer = completer
        self.instructions = instructions

    def classify(self, problem_text: str, *, timeout: float | None = None) -> ClassificationResult:
        """Classify *problem_text*.

        Raises:
            ClassificationError: Empty problem, provider failure, or invalid output.
        """
        if not problem_text or not problem_text.strip():
            raise ClassificationError("Problem statement required")
        try:
            answer = self._completer.complete(
                self.instructions,
                f"Problem to classify:\n{problem_text.strip()}",
                timeout=timeout,
            )
        except Exception as exc:
            raise ClassificationError(f"Classification request failed: {exc}") from exc
        return parse_classification(answer)

    def classify_or_default(
        self, problem_text: str, *, timeout: float | None = None
    ) -> ClassificationResult:
        """Like classify(), but logs and returns ClassificationResult.empty() on failure."""
        try:
            return self.classify(problem_text, timeout=timeout)
        except ClassificationError as exc:
            logger.warning(f"Classification failed, using empty default: {exc}")
            return ClassificationResult.empty()
