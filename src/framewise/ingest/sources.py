"""Source document discovery and text reading.

Domain inference from the directory tree:
  - a directory named after a domain (case-insensitive) is authoritative and
    resets the sub-domain
  - a non-domain directory beneath a domain sets the sub-domain to its name
  - a non-domain directory above any domain is transparent
  - files outside any domain directory infer the domain from their file name,
    falling back to ``unknown``

Text reading: .docx via python-docx (bold runs rendered as ``__text__`` so the
parser can find workflow titles), .md / .markdown / .txt as UTF-8 text.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from pathlib import Path

import docx

from framewise.taxonomy import DOMAINS, infer_domain_from_name

_DOCX_EXTS = {".docx"}
_TEXT_EXTS = {".md", ".markdown", ".txt"}
SUPPORTED_EXTENSIONS = _DOCX_EXTS | _TEXT_EXTS


@dataclass
class SourceDocument:
    path: Path
    domain: str
    sub_domain: str = "general"


def discover_documents(root: Path) -> list[SourceDocument]:
    """Return every supported document under *root*, sorted by path.

    Office lock files (``~$name.docx``) are skipped.
    """
    results: list[SourceDocument] = []
    _walk(Path(root), "", "", results)
    return results


def _walk(directory: Path, domain: str, sub_domain: str, out: list[SourceDocument]) -> None:
    try:
        entries = sorted(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError, PermissionError):
        return

    for entry in entries:
        if entry.is_dir():
            folder = entry.name.lower()
            if folder in DOMAINS:
                _walk(entry, folder, "", out)
            elif domain:
                _walk(entry, domain, entry.name, out)
            else:
                _walk(entry, domain, sub_domain, out)
        elif entry.is_file() and entry.suffix.lower() in SUPPORTED_EXTENSIONS:
            if entry.name.startswith("~$"):
                continue
            out.append(
                SourceDocument(
                    path=entry,
                    domain=domain or infer_domain_from_name(entry.name),
                    sub_domain=sub_domain or "general",
                )
            )


def read_document(path: Path) -> str:
    """Return the text of *path*.

    Raises:
        ValueError: If the extension is not supported.
        OSError: If the file cannot be read.
    """
    ext = path.suffix.lower()
    if ext in _DOCX_EXTS:
        return _read_docx(path)
    if ext in _TEXT_EXTS:
        return path.read_text(encoding="utf-8", errors="replace")
    raise ValueError(f"Unsupported document type: {ext!r}")


def _read_docx(path: Path) -> str:
    """Paragraph text, one paragraph per line, bold runs wrapped in ``__``.

    Consecutive bold runs are merged first; Word often splits one bold title
    into several runs.
    """
    document = docx.Document(str(path))
    lines: list[str] = []
    for paragraph in document.paragraphs:
        parts: list[str] = []
        for bold, group in groupby(paragraph.runs, key=lambda run: bool(run.bold)):
            text = "".join(run.text for run in group)
            if bold and text.strip():
                # Surrounding spaces stay outside the markers.
                lead = text[: len(text) - len(text.lstrip())]
                trail = text[len(text.rstrip()) :]
                parts.append(f"{lead}__{text.strip()}__{trail}")
            else:
                parts.append(text)
        lines.append("".join(parts))
    return "\n".join(lines)
