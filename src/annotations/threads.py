"""Comment threading, ordering, anchor resolution and reaction toggling.

These functions are pure over in-memory comment lists; persistence and
locking live in the comment store.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.annotations.models import AnchorKind, Comment, CommentNotFoundError
from src.extraction.models import SmartComment
from src.ids import new_id, now_ms
from src.ingestion.models import Line
from src.pipeline_config import ReactionAction


def sort_comments(comments: Iterable[Comment]) -> list[Comment]:
    """Order by ``createdAt`` ascending; ties keep their original order."""
    return sorted(comments, key=lambda c: c.created_at)


def thread_comments(comments: Iterable[Comment]) -> dict[str | None, list[Comment]]:
    """Group comments by ``parentId`` (``None`` for top-level), each group ordered by time."""
    threads: dict[str | None, list[Comment]] = {}
    for comment in sort_comments(comments):
        threads.setdefault(comment.parent_id, []).append(comment)
    return threads


def anchor_time(comment: Comment, lines: list[Line] | None = None) -> float:
    """Timeline position to jump to for *comment*, in seconds."""
    anchor = comment.anchor
    if anchor.kind is AnchorKind.RANGE and anchor.start is not None:
        return anchor.start
    if anchor.kind is AnchorKind.POINT and anchor.at is not None:
        return anchor.at
    if anchor.kind is AnchorKind.LINE and anchor.line_index is not None and lines:
        if 0 <= anchor.line_index < len(lines):
            return lines[anchor.line_index].start
    return 0.0


def new_comment(
    text: str,
    parent_id: str | None = None,
    at: float | None = None,
    line_index: int | None = None,
    start: float | None = None,
    end: float | None = None,
    quote_text: str | None = None,
    created_at: int | None = None,
) -> Comment:
    ts = now_ms() if created_at is None else created_at
    quote = quote_text.strip() if quote_text else None
    return Comment(
        id=new_id(ts),
        parent_id=parent_id or None,
        at=at,
        line_index=line_index,
        start=start,
        end=end,
        quote_text=quote or None,
        text=text,
        created_at=ts,
        reactions={},
    )


def find_comment(comments: list[Comment], comment_id: str) -> Comment:
    for comment in comments:
        if comment.id == comment_id:
            return comment
    raise CommentNotFoundError(comment_id)


def toggle_reaction(
    comments: list[Comment],
    comment_id: str,
    emoji: str,
    client_id: str,
    action: ReactionAction | None = None,
) -> Comment:
    """Add, remove or flip *client_id* in *emoji*'s reactor set, in place.

    ``ADD`` when already present and ``REMOVE`` when absent are no-ops.

    Raises:
        CommentNotFoundError: If no comment has *comment_id*.
    """
    comment = find_comment(comments, comment_id)
    reactors = list(comment.reactions.get(emoji, []))
    present = client_id in reactors
    should_add = not present if action is None else action is ReactionAction.ADD

    if should_add and not present:
        reactors.append(client_id)
    elif not should_add and present:
        reactors.remove(client_id)

    reactions = dict(comment.reactions)
    if reactors:
        reactions[emoji] = reactors
    else:
        reactions.pop(emoji, None)
    comment.reactions = reactions
    return comment


def _dedupe_key(line_index: int | None, text: str) -> str:
    return f"{'' if line_index is None else line_index}|{text.lower()}"


def merge_smart_comments(
    existing: list[Comment],
    smart: list[SmartComment],
    created_at: int | None = None,
) -> list[Comment]:
    """Append auto-comments not already present, keyed by (line index, lowercased text).

    Returns a new list; ``existing`` is not modified.
    """
    ts = now_ms() if created_at is None else created_at
    merged = list(existing)
    seen = {_dedupe_key(c.line_index, c.text) for c in existing}
    for item in smart:
        key = _dedupe_key(item.line_index, item.text)
        if key in seen:
            continue
        seen.add(key)
        merged.append(
            new_comment(item.text, at=item.at, line_index=item.line_index, created_at=ts)
        )
    return merged
