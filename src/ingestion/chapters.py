"""Chapter segmentation: split segments on silence gaps or buffer length."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.ingestion.models import Chapter, Segment
from src.pipeline_config import DEFAULT_DERIVATION, DerivationConfig

_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
_EDGE_PUNCT = "\"'“”‘’()[]{}.,;:!?-–—…"

# Articles, coordinating conjunctions and short prepositions stay lowercase
# in titles unless they lead.
MINOR_WORDS = frozenset(
    {
        "a", "an", "the",
        "and", "but", "or", "nor", "for", "so", "yet",
        "as", "at", "by", "in", "of", "off", "on", "per", "to", "up", "via",
        "from", "into", "onto", "over", "with",
    }
)  # fmt: skip


@dataclass
class ChapterDraft:
    """A chapter before its title is final; keeps the text for title refinement."""

    start: float
    end: float
    text: str
    title: str = ""

    def to_chapter(self) -> Chapter:
        return Chapter(title=self.title, start=self.start, end=self.end)


def segment_chapters(
    segments: list[Segment],
    gap_seconds: float = DEFAULT_DERIVATION.chapter_gap_seconds,
    max_chars: int = DEFAULT_DERIVATION.chapter_max_chars,
) -> list[ChapterDraft]:
    """Group *segments* into chapters.

    A boundary is forced before a segment when the silence since the previous
    segment exceeds *gap_seconds*, or the buffered text is already longer than
    *max_chars*. Missing segment times are imputed from the running cursor.
    """
    drafts: list[ChapterDraft] = []
    cur_start: float | None = None
    cur_end: float | None = None
    buf = ""

    def flush() -> None:
        nonlocal cur_start, cur_end, buf
        if cur_start is not None and cur_end is not None:
            drafts.append(ChapterDraft(start=cur_start, end=cur_end, text=buf.strip()))
        cur_start = cur_end = None
        buf = ""

    for seg in segments:
        cursor = cur_end if cur_end is not None else 0.0
        seg_start = seg.start if seg.start is not None else cursor
        seg_end = seg.end if seg.end is not None else seg_start

        gap = 0.0 if cur_end is None else max(0.0, seg_start - cur_end)
        if gap > gap_seconds or len(buf) > max_chars:
            flush()

        if cur_start is None:
            cur_start = seg_start
        cur_end = seg_end
        text = (seg.text or "").strip()
        if text:
            buf = f"{buf} {text}" if buf else text

    flush()
    return drafts


def heuristic_title(text: str, index: int, max_words: int = DEFAULT_DERIVATION.chapter_title_words) -> str:
    """Derive a short title from the first sentence of *text*.

    ``index`` is the zero-based chapter position, used for the ``Moment N``
    placeholder when nothing usable remains.
    """
    raw = " ".join(text.split())
    sentence = _SENTENCE_END_RE.split(raw, maxsplit=1)[0] if raw else ""

    words: list[str] = []
    for token in sentence.split():
        cleaned = token.strip(_EDGE_PUNCT)
        if cleaned:
            words.append(cleaned)
        if len(words) >= max_words:
            break

    if not words:
        return f"Moment {index + 1}"

    titled: list[str] = []
    for i, word in enumerate(words):
        if i > 0 and word.lower() in MINOR_WORDS:
            titled.append(word.lower())
        else:
            titled.append(word[0].upper() + word[1:])
    return " ".join(titled)


def build_chapters(
    segments: list[Segment],
    config: DerivationConfig = DEFAULT_DERIVATION,
) -> list[ChapterDraft]:
    """Segment into chapters and give each a heuristic title."""
    drafts = segment_chapters(
        segments,
        gap_seconds=config.chapter_gap_seconds,
        max_chars=config.chapter_max_chars,
    )
    for i, draft in enumerate(drafts):
        draft.title = heuristic_title(draft.text, i, max_words=config.chapter_title_words)
    return drafts
