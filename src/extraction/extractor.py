"""Pattern-based extraction of action items and key points from transcript lines."""

from __future__ import annotations

import re

from src.extraction.models import SmartComment, SmartCommentKind
from src.ingestion.models import Line
from src.pipeline_config import DEFAULT_DERIVATION

# Lines that read like something somebody has to do
_ACTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(?:let's|lets)\b", re.IGNORECASE),
    re.compile(r"\bwe (?:need|should|must|will)\b", re.IGNORECASE),
    re.compile(r"\baction(?: item)?s?\b", re.IGNORECASE),
    re.compile(r"\btodo\b", re.IGNORECASE),
    re.compile(r"\bfollow ?up\b", re.IGNORECASE),
    re.compile(r"\bschedule\b", re.IGNORECASE),
    re.compile(r"\bsend\b", re.IGNORECASE),
    re.compile(r"\bemail\b", re.IGNORECASE),
    re.compile(r"\bcreate\b", re.IGNORECASE),
    re.compile(r"\bupdate\b", re.IGNORECASE),
    re.compile(r"\bfix\b", re.IGNORECASE),
    re.compile(r"\breview\b", re.IGNORECASE),
    re.compile(r"\bdeploy\b", re.IGNORECASE),
    re.compile(r"\btest\b", re.IGNORECASE),
    re.compile(r"\bdocument\b", re.IGNORECASE),
]

# Checked only when no action pattern matched
_KEY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\bkey point\b", re.IGNORECASE),
    re.compile(r"\bimportant\b", re.IGNORECASE),
    re.compile(r"\bnote\b", re.IGNORECASE),
    re.compile(r"\bsummary\b", re.IGNORECASE),
    re.compile(r"!\s*$"),
]


def classify_line(text: str) -> SmartCommentKind | None:
    """Return ACTION, KEY, or None for a single line of transcript text."""
    text = text.strip()
    if not text:
        return None
    if any(p.search(text) for p in _ACTION_PATTERNS):
        return SmartCommentKind.ACTION
    if any(p.search(text) for p in _KEY_PATTERNS):
        return SmartCommentKind.KEY
    return None


def extract_smart_comments(
    lines: list[Line],
    limit: int = DEFAULT_DERIVATION.smart_comment_limit,
) -> list[SmartComment]:
    """Scan *lines* for action items and key points.

    Labels are de-duplicated case-insensitively, and at most *limit* distinct
    comments are returned, in line order.

    Args:
        lines: Derived transcript lines.
        limit: Maximum number of comments to return.

    Returns:
        Candidate auto-comments carrying their line index and start time.
    """
    results: list[SmartComment] = []
    seen: set[str] = set()

    for index, line in enumerate(lines):
        kind = classify_line(line.text)
        if kind is None:
            continue

        normalized = " ".join(line.text.split())
        label = f"{kind.value}: {normalized}"
        if label.lower() in seen:
            continue
        seen.add(label.lower())

        results.append(SmartComment(kind=kind, text=label, line_index=index, at=line.start))
        if len(results) >= limit:
            break

    return results
