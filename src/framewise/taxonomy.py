"""Fixed taxonomy shared by ingestion, the corpus and the classifier.

Domains are the functional areas a workflow belongs to. Intent is the kind of
output the requester wants. Both are closed sets; anything else is either
rejected (classifier output) or tagged ``unknown`` for manual triage
(ingestion).
"""

from __future__ import annotations

DOMAINS: tuple[str, ...] = (
    "strategy",
    "marketing",
    "sales",
    "operations",
    "innovation",
    "hr",
    "finance",
)

UNKNOWN_DOMAIN = "unknown"

INTENTS: tuple[str, ...] = ("explore", "decide", "execute", "monitor")

COMPLEXITIES: tuple[str, ...] = ("low", "medium", "high")

# Keywords whose co-occurrence in a workflow suggests it pairs well with the
# given domain (synergy triggers). Order of DOMAINS is preserved.
DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "strategy": ("market", "competitive", "growth", "business model"),
    "marketing": ("brand", "campaign", "customer", "messaging", "positioning"),
    "sales": ("pipeline", "conversion", "deal", "pricing", "revenue"),
    "operations": ("process", "efficiency", "delivery", "capacity"),
    "innovation": ("product", "feature", "roadmap", "development"),
    "hr": ("team", "hiring", "culture", "talent", "organization"),
    "finance": ("budget", "cost", "investment", "profitability"),
}


def is_valid_domain(value: str | None) -> bool:
    """Return True if *value* is one of the fixed domains (case-sensitive)."""
    return value in DOMAINS


def normalize_domain(value: str | None) -> str | None:
    """Lower-case and strip *value*; return None if it is not a known domain."""
    if not isinstance(value, str):
        return None
    candidate = value.strip().lower()
    return candidate if candidate in DOMAINS else None


def infer_domain_from_name(filename: str) -> str:
    """Return the first domain whose name appears in *filename*, else ``unknown``.

    Example:
        "MARKETING_PROMPTS_1.docx" -> "marketing"
    """
    lower = filename.lower()
    for domain in DOMAINS:
        if domain in lower:
            return domain
    return UNKNOWN_DOMAIN
