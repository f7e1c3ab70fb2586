"""Pydantic request/response schemas for the Voice Memos API.

Payloads use camelCase keys to match the stored documents.
"""

from __future__ import annotations

from src.annotations.models import Comment
from src.ingestion.models import Document
from src.pipeline_config import ReactionAction


class UploadResponse(Document):
    """Response body for /api/upload; transcription continues in the background."""

    id: str
    url: str
    share_url: str


class CommentRequest(Document):
    """Request body for posting a comment. Blank ``text`` is rejected with 400."""

    text: str = ""
    parent_id: str | None = None
    at: float | None = None
    line_index: int | None = None
    start: float | None = None
    end: float | None = None
    quote_text: str | None = None


class ReactionRequest(Document):
    """Request body for reactions; omitting ``action`` toggles."""

    emoji: str = ""
    client_id: str = ""
    action: ReactionAction | None = None


class CommentsResponse(Document):
    comments: list[Comment]


class CommentResponse(Document):
    ok: bool = True
    comment: Comment


class AskRequest(Document):
    question: str = ""


class AskResponse(Document):
    answer: str
