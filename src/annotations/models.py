"""Comment documents and their time anchors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import field_validator, model_serializer

from src.ingestion.models import Document

# Optional anchor fields are left out of the stored document when unset
_OPTIONAL_FIELDS = (
    ("at", "at"),
    ("line_index", "lineIndex"),
    ("start", "start"),
    ("end", "end"),
    ("quote_text", "quoteText"),
)


class AnchorKind(str, Enum):
    RANGE = "range"
    POINT = "point"
    LINE = "line"
    NONE = "none"


@dataclass(frozen=True)
class Anchor:
    """The effective anchor of a comment, resolved range > point > line."""

    kind: AnchorKind
    start: float | None = None
    end: float | None = None
    at: float | None = None
    line_index: int | None = None
    quote_text: str | None = None


class CommentNotFoundError(LookupError):
    def __init__(self, comment_id: str) -> None:
        super().__init__(f"Comment {comment_id} not found")
        self.comment_id = comment_id


class Comment(Document):
    """A threaded, time-anchored comment with emoji reactions.

    ``reactions`` maps an emoji to the client IDs that reacted with it; the
    lists behave as sets (duplicates collapse on load).
    """

    id: str
    parent_id: str | None = None
    at: float | None = None
    line_index: int | None = None
    start: float | None = None
    end: float | None = None
    quote_text: str | None = None
    text: str
    created_at: int = 0
    reactions: dict[str, list[str]] = {}

    @field_validator("reactions", mode="before")
    @classmethod
    def _reactions_as_sets(cls, value: Any) -> dict[str, list[str]]:
        if not isinstance(value, dict):
            return {}
        cleaned: dict[str, list[str]] = {}
        for emoji, reactors in value.items():
            if not isinstance(reactors, list):
                continue
            unique = list(dict.fromkeys(str(r) for r in reactors if r))
            if unique:
                cleaned[str(emoji)] = unique
        return cleaned

    @model_serializer(mode="wrap")
    def _drop_unset_anchors(self, handler: Any) -> dict[str, Any]:
        data = handler(self)
        for name, alias in _OPTIONAL_FIELDS:
            for key in (name, alias):
                if key in data and data[key] is None:
                    del data[key]
        return data

    @property
    def anchor(self) -> Anchor:
        if self.start is not None:
            return Anchor(AnchorKind.RANGE, start=self.start, end=self.end, quote_text=self.quote_text)
        if self.at is not None:
            return Anchor(AnchorKind.POINT, at=self.at)
        if self.line_index is not None:
            return Anchor(AnchorKind.LINE, line_index=self.line_index)
        return Anchor(AnchorKind.NONE)

    def reactors(self, emoji: str) -> list[str]:
        return self.reactions.get(emoji, [])
