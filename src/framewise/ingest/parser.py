"""Workflow parser — turns a source document into WorkflowRecords.

Documents are line-oriented. The grammar:

    document     := preamble? unit*
    unit         := header_block task_line body
    header_block := (blank | section_header | bold_line | md_heading)*
    task_line    := "# TASK" [rest of line]
    body         := any line up to the next unit's header_block (or EOF)

    section_header := "<n>. " bold run(s) alone on a line, e.g. "1. __Positioning — Ries__"
    bold_line      := a line made only of bold runs (``__x__`` or ``**x**``)
    md_heading     := "#"-"###" heading that is not a TASK/STEP/INTRODUCTION marker

Rules:
  - A section header sets the source attribution for every later unit.
  - Unit name = last bold run / heading in the unit's header block that is not
    a section header; fallback "<domain> Workflow <n>".
  - No task line anywhere → the whole document is one unit named after the file.

Field extraction rules are the ``extract_*`` / ``estimate_*`` functions below;
each is independent and tested on its own.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from framewise.db.models import WorkflowRecord
from framewise.ingest.sources import discover_documents, read_document
from framewise.taxonomy import DOMAIN_KEYWORDS, DOMAINS, UNKNOWN_DOMAIN

MIN_SUMMARY_LENGTH = 50
MAX_SUMMARY_LENGTH = 1000
FALLBACK_SUMMARY_LENGTH = 500
MAX_KEY_QUESTIONS = 10
MAX_PROBLEM_PATTERNS = 8
MAX_SYNERGY_TRIGGERS = 3
MAX_NAME_LENGTH = 100

DEFAULT_SOURCE = "Unknown Source"

_TASK_LINE_RE = re.compile(r"^[ \t]*#[ \t]*TASK\b[ \t:\-]*(.*)$", re.IGNORECASE)
_SUMMARY_END_RE = re.compile(r"^[ \t]*#[ \t]*(?:INTRODUCTION|STEP)\b", re.IGNORECASE | re.MULTILINE)
_STEP_RE = re.compile(r"#\s*STEP\s*\d", re.IGNORECASE)
_MARKER_WORD_RE = re.compile(r"^(?:TASK|STEP|INTRODUCTION)\b", re.IGNORECASE)
_MD_HEADING_RE = re.compile(r"^[ \t]*#{1,3}[ \t]+(.+?)[ \t]*#*[ \t]*$")
_BOLD_RUN_RE = re.compile(r"__([^_\n]+?)__|\*\*([^*\n]+?)\*\*")
_SECTION_HEADER_RE = re.compile(r"^[ \t]*\d+\.[ \t]+((?:__[^_\n]+?__|\*\*[^*\n]+?\*\*)[ \t]*)+$")

_CONTEXT_RE = re.compile(r"//\s*Context:\s*(.+?)[ \t]*$", re.IGNORECASE | re.MULTILINE)
_ASK_PREFIX_RE = re.compile(r"^ask\s+(?:me\s+)?(?:for|about|to|what|how|which|if)\b", re.IGNORECASE)
_ASK_QUESTION_RE = re.compile(r"""\bAsk[,:]?\s*["']?([^"'\n]+\?)""", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_DURATION_RE = re.compile(
    r"\b(?:estimated\s+)?(?:duration|time)\s*:\s*(\d+)\s*(?:minutes|mins|min)\b",
    re.IGNORECASE,
)

PROBLEM_KEYWORDS: tuple[str, ...] = (
    "struggling", "challenge", "problem", "issue", "pain", "frustrated",
    "unclear", "confused", "stuck", "failing", "declining", "losing",
)

# Workflow-name keyword → symptom phrases typically addressed by that workflow.
_NAME_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("position", ("unclear market positioning", "difficulty differentiating from competitors")),
    ("category", ("competing in crowded market", "no clear category ownership")),
    ("launch", ("preparing for product launch", "need go-to-market strategy")),
    ("competitor", ("losing deals to competitors", "need competitive differentiation")),
)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def clean_text(text: str) -> str:
    """Remove markdown escape backslashes, normalise newlines, strip."""
    return (
        text.replace("\\.", ".")
        .replace("\\-", "-")
        .replace("\\_", "_")
        .replace("\\'", "'")
        .replace('\\"', '"')
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .strip()
    )


def bold_runs(line: str) -> list[str]:
    """Return the stripped text of every bold run in *line*, in order."""
    return [(a or b).strip() for a, b in _BOLD_RUN_RE.findall(line)]


def strip_bold_markers(text: str) -> str:
    """'Use the __Positioning__ method' -> 'Use the Positioning method'."""
    return _BOLD_RUN_RE.sub(lambda m: m.group(1) or m.group(2), text)


def is_section_header(line: str) -> bool:
    return bool(_SECTION_HEADER_RE.match(line))


def _is_bold_line(line: str) -> bool:
    return bool(_BOLD_RUN_RE.search(line)) and not _BOLD_RUN_RE.sub("", line).strip()


def _heading_text(line: str) -> str | None:
    """Text of a markdown heading that is not a TASK/STEP/INTRODUCTION marker."""
    match = _MD_HEADING_RE.match(line)
    if not match:
        return None
    text = match.group(1).strip()
    if _MARKER_WORD_RE.match(text):
        return None
    runs = bold_runs(text)
    return runs[-1] if runs else text


def _is_header_line(line: str) -> bool:
    return (
        not line.strip()
        or is_section_header(line)
        or _is_bold_line(line)
        or _heading_text(line) is not None
    )


def source_attribution(header_line: str) -> str:
    """'1. __Positioning — Ries & Trout__' -> 'Positioning by Ries & Trout'."""
    text = " ".join(bold_runs(header_line))
    text = re.sub(r"\s*(?:—|--)\s*", " by ", text)
    return " ".join(text.split())


# ---------------------------------------------------------------------------
# Field extraction rules
# ---------------------------------------------------------------------------


def extract_task_summary(unit_text: str) -> str:
    """Text after the task marker up to the first STEP / INTRODUCTION marker.

    Falls back to the first 500 characters when the unit has no task marker.
    """
    first_line, _, rest = unit_text.partition("\n")
    match = _TASK_LINE_RE.match(first_line)
    if not match:
        return clean_text(unit_text[:FALLBACK_SUMMARY_LENGTH])
    end = _SUMMARY_END_RE.search(rest)
    body = rest[: end.start()] if end else rest
    summary = clean_text(f"{match.group(1)}\n{body}")
    return summary[:MAX_SUMMARY_LENGTH]


def extract_key_questions(unit_text: str) -> list[str]:
    """Diagnostic questions from ``// Context:`` annotations and ``Ask "...?"`` constructs."""
    questions: list[str] = []

    for match in _CONTEXT_RE.finditer(unit_text):
        context = clean_text(match.group(1))
        if "ask" not in context.lower():
            continue
        question = _ASK_PREFIX_RE.sub("", context).strip().rstrip("?.").strip()
        if len(question) > 10:
            question = question[0].upper() + question[1:] + "?"
            if question not in questions:
                questions.append(question)

    for match in _ASK_QUESTION_RE.finditer(unit_text):
        question = clean_text(match.group(1))
        if len(question) > 10 and question not in questions:
            questions.append(question)

    return questions[:MAX_KEY_QUESTIONS]


def extract_problem_patterns(unit_text: str, name: str) -> list[str]:
    """Symptom sentences (distress keywords) plus workflow-name heuristics."""
    patterns: list[str] = []

    for sentence in _SENTENCE_SPLIT_RE.split(unit_text):
        stripped = sentence.strip(" \t\n\"'")
        if not 20 < len(stripped) < 200:
            continue
        lower = stripped.lower()
        if any(keyword in lower for keyword in PROBLEM_KEYWORDS):
            cleaned = " ".join(clean_text(stripped).split())
            if cleaned and cleaned not in patterns:
                patterns.append(cleaned)

    name_lower = name.lower()
    for keyword, phrases in _NAME_PATTERNS:
        if keyword in name_lower:
            patterns.extend(p for p in phrases if p not in patterns)

    return patterns[:MAX_PROBLEM_PATTERNS]


def extract_synergy_triggers(unit_text: str, domain: str) -> list[str]:
    """Other domains with at least two keyword hits in *unit_text*."""
    lower = unit_text.lower()
    triggers = [
        other
        for other in DOMAINS
        if other != domain
        and sum(1 for keyword in DOMAIN_KEYWORDS[other] if keyword in lower) >= 2
    ]
    return triggers[:MAX_SYNERGY_TRIGGERS]


def estimate_complexity(unit_text: str) -> str:
    """high: >6 steps or >2000 words; medium: >3 steps or >1000 words; else low."""
    steps = len(_STEP_RE.findall(unit_text))
    words = len(unit_text.split())
    if steps > 6 or words > 2000:
        return "high"
    if steps > 3 or words > 1000:
        return "medium"
    return "low"


def extract_duration(unit_text: str) -> int | None:
    """Minutes from an explicit ``Duration: N min`` annotation, if any."""
    match = _DURATION_RE.search(unit_text)
    if not match:
        return None
    minutes = int(match.group(1))
    return minutes if minutes > 0 else None


def normalize_sub_domain(sub_domain: str) -> str:
    return re.sub(r"\s+", "-", sub_domain.strip().lower()) or "general"


# ---------------------------------------------------------------------------
# Unit splitting
# ---------------------------------------------------------------------------


@dataclass
class WorkflowUnit:
    """One workflow's raw text plus the attribution found around it."""

    name: str
    source: str
    text: str


def split_units(text: str, domain: str, fallback_name: str = "") -> list[WorkflowUnit]:
    """Split cleaned document *text* into workflow units (see module grammar)."""
    lines = text.split("\n")
    markers = [i for i, line in enumerate(lines) if _TASK_LINE_RE.match(line)]

    if not markers:
        if not text.strip():
            return []
        name = re.sub(r"[-_]+", " ", fallback_name).strip() or f"{domain} Workflow 1"
        return [WorkflowUnit(name=name, source=DEFAULT_SOURCE, text=text.strip())]

    # Header block of each unit: contiguous header lines directly above its
    # marker. A markdown heading only joins the block while nothing but blank
    # lines separates it from the marker; otherwise it closes the previous unit.
    starts: list[int] = []
    previous = -1
    for marker in markers:
        start = marker
        absorbed = False
        while start - 1 > previous and _is_header_line(lines[start - 1]):
            line = lines[start - 1]
            if absorbed and _heading_text(line) is not None:
                break
            absorbed = absorbed or bool(line.strip())
            start -= 1
        starts.append(start)
        previous = marker

    section_lines = [i for i, line in enumerate(lines) if is_section_header(line)]

    units: list[WorkflowUnit] = []
    for n, (start, marker) in enumerate(zip(starts, markers), start=1):
        end = starts[n] if n < len(starts) else len(lines)
        units.append(
            WorkflowUnit(
                name=_unit_name(lines[start:marker]) or f"{domain} Workflow {n}",
                source=_unit_source(lines, section_lines, marker),
                text="\n".join(lines[marker:end]).strip(),
            )
        )
    return units


def _unit_name(header_block: list[str]) -> str | None:
    candidates: list[str] = []
    for line in header_block:
        if not line.strip() or is_section_header(line):
            continue
        if _is_bold_line(line):
            candidates.extend(bold_runs(line))
        else:
            heading = _heading_text(line)
            if heading:
                candidates.append(heading)
    valid = [
        c for c in candidates
        if c and "—" not in c and "--" not in c and len(c) < MAX_NAME_LENGTH
    ]
    return valid[-1] if valid else None


def _unit_source(lines: list[str], section_lines: list[int], marker: int) -> str:
    before = [i for i in section_lines if i < marker]
    if not before:
        return DEFAULT_SOURCE
    return source_attribution(lines[before[-1]]) or DEFAULT_SOURCE


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class WorkflowParser:
    """Parse document text into WorkflowRecords.

    Units whose task summary is shorter than ``min_summary_length``
    characters are discarded as noise.
    """

    def __init__(self, min_summary_length: int = MIN_SUMMARY_LENGTH) -> None:
        self.min_summary_length = min_summary_length

    def parse(
        self,
        text: str,
        domain: str,
        sub_domain: str = "general",
        file_path: str = "",
        fallback_name: str = "",
    ) -> list[WorkflowRecord]:
        cleaned = clean_text(text)
        domain = domain.lower() if domain else UNKNOWN_DOMAIN
        records: list[WorkflowRecord] = []
        for unit in split_units(cleaned, domain, fallback_name=fallback_name):
            record = self._build(unit, domain, sub_domain, file_path)
            if len(record.task_summary) >= self.min_summary_length:
                records.append(record)
            else:
                logger.debug(
                    f"Discarding '{record.name}' in {file_path or '<text>'}: "
                    f"summary is {len(record.task_summary)} chars"
                )
        return records

    def _build(self, unit: WorkflowUnit, domain: str, sub_domain: str, file_path: str) -> WorkflowRecord:
        name = clean_text(unit.name)
        body = strip_bold_markers(unit.text)
        return WorkflowRecord(
            name=name,
            domain=domain,
            sub_domain=normalize_sub_domain(sub_domain),
            source_book=clean_text(unit.source),
            task_summary=extract_task_summary(body),
            full_prompt=clean_text(body),
            key_questions=extract_key_questions(body),
            problem_patterns=extract_problem_patterns(body, name),
            synergy_triggers=extract_synergy_triggers(body, domain),
            complexity=estimate_complexity(body),
            estimated_duration_min=extract_duration(body),
            file_path=file_path,
        )


# ---------------------------------------------------------------------------
# Parse stage
# ---------------------------------------------------------------------------


@dataclass
class ParseReport:
    """Output of the Parse stage.

    Attributes:
        records: Parsed workflows in document order.
        errors: (file path, message) for every file that failed to parse.
        files: Number of documents found.
    """

    records: list[WorkflowRecord] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)
    files: int = 0

    @property
    def unknown(self) -> list[WorkflowRecord]:
        """Records with no recognised domain, flagged for manual triage."""
        return [r for r in self.records if r.domain == UNKNOWN_DOMAIN]

    def domain_counts(self) -> dict[str, int]:
        return dict(Counter(r.domain for r in self.records))


def parse_directory(
    root: Path,
    parser: WorkflowParser | None = None,
    on_file: Callable[[int, int, Path], None] | None = None,
) -> ParseReport:
    """Parse every supported document under *root*.

    A failure in one file is recorded in ``ParseReport.errors`` and the run
    continues with the next file.
    """
    parser = parser or WorkflowParser()
    documents = discover_documents(root)
    report = ParseReport(files=len(documents))

    for index, document in enumerate(documents, start=1):
        if on_file is not None:
            on_file(index, len(documents), document.path)
        try:
            text = read_document(document.path)
            records = parser.parse(
                text,
                domain=document.domain,
                sub_domain=document.sub_domain,
                file_path=str(document.path),
                fallback_name=document.path.stem,
            )
        except Exception as exc:  # noqa: BLE001 per-file failures are reported
            logger.warning(f"Failed to parse {document.path}: {exc}")
            report.errors.append((str(document.path), str(exc) or type(exc).__name__))
            continue
        logger.info(f"{document.path.name}: {len(records)} workflows")
        report.records.extend(records)

    return report
