"""Pipeline configuration: state enums and the DerivationConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IngestionState(str, Enum):
    """States of a single ingestion run."""

    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    READY = "ready"
    ERROR = "error"


class ReactionAction(str, Enum):
    """Explicit reaction intent; ``None`` in requests means toggle."""

    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class DerivationConfig:
    """Immutable tuning knobs for transcript post-processing.

    Defaults mirror the behaviour the share page was designed around
    (8-word lines, 2.5s silence splits, 12 auto-comments at most).
    """

    words_per_line: int = 8
    chapter_gap_seconds: float = 2.5
    chapter_max_chars: int = 200
    chapter_title_words: int = 6
    chapter_excerpt_chars: int = 360
    smart_comment_limit: int = 12


DEFAULT_DERIVATION = DerivationConfig()
