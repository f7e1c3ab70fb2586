"""Data models for automatically extracted comments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SmartCommentKind(str, Enum):
    ACTION = "Action"
    KEY = "Key"


@dataclass
class SmartComment:
    """A candidate auto-comment anchored to a transcript line (not yet persisted)."""

    kind: SmartCommentKind
    text: str  # "Action: ..." / "Key: ..."
    line_index: int
    at: float | None = None
