"""Word timing synthesis and line grouping for provider segments."""

from __future__ import annotations

from src.ingestion.models import Line, Segment, Word
from src.pipeline_config import DEFAULT_DERIVATION


def build_word_timings(segments: list[Segment]) -> list[Word]:
    """Spread each segment's duration evenly across its whitespace-split tokens.

    The cheap transcription mode only returns segment-level timing, so word
    times are a linear interpolation: monotonic and plausibly paced, not exact.

    Args:
        segments: Provider segments in chronological order.

    Returns:
        Flat word list across all non-blank segments.
    """
    words: list[Word] = []
    for seg in segments:
        tokens = (seg.text or "").split()
        if not tokens:
            continue

        seg_start = seg.start if seg.start is not None else 0.0
        seg_end = seg.end if seg.end is not None else seg_start
        # Providers occasionally report end < start; never emit end < start
        seg_end = max(seg_end, seg_start)

        step = max(0.001, seg_end - seg_start) / len(tokens)
        cursor = seg_start
        for i, token in enumerate(tokens):
            start = cursor
            end = seg_end if i == len(tokens) - 1 else min(seg_end, start + step)
            words.append(Word(text=token, start=start, end=end))
            cursor = end

    return words


def group_words_into_lines(words: list[Word], size: int = DEFAULT_DERIVATION.words_per_line) -> list[Line]:
    """Partition *words* into consecutive lines of *size* words (last may be shorter).

    ``from``/``to`` are inclusive indices into *words*; start/end come from the
    bounding words.
    """
    if size < 1:
        raise ValueError(f"Line size must be positive, got {size}")

    lines: list[Line] = []
    for i in range(0, len(words), size):
        window = words[i : i + size]
        lines.append(
            Line(
                text=" ".join(w.text for w in window),
                start=window[0].start,
                end=window[-1].end,
                from_=i,
                to=i + len(window) - 1,
            )
        )
    return lines
