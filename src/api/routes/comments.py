"""Comment endpoints: list, post, and emoji reactions."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_comment_store, get_memo_store
from src.api.models import CommentRequest, CommentResponse, CommentsResponse, ReactionRequest
from src.api.routes.memos import load_memo
from src.annotations.models import Comment, CommentNotFoundError
from src.annotations.threads import new_comment, sort_comments, toggle_reaction
from src.ingestion.storage import CommentStore, MemoStore, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_storage(comments: CommentStore) -> None:
    if not comments.configured:
        raise HTTPException(
            status_code=503,
            detail="Comments storage unavailable (object store required)",
        )


@router.get("/api/memos/{memo_id}/comments", response_model=CommentsResponse)
def list_comments(
    memo_id: str,
    memos: Annotated[MemoStore, Depends(get_memo_store)],
    comments: Annotated[CommentStore, Depends(get_comment_store)],
) -> CommentsResponse:
    """All comments for a memo, oldest first."""
    _require_storage(comments)
    load_memo(memos, memo_id)
    try:
        stored = comments.get(memo_id)
    except StorageError as exc:
        logger.exception("Failed to load comments for memo %s", memo_id)
        raise HTTPException(status_code=500, detail="Failed to load comments") from exc
    return CommentsResponse(comments=sort_comments(stored))


@router.post("/api/memos/{memo_id}/comments", response_model=CommentResponse)
def post_comment(
    memo_id: str,
    body: CommentRequest,
    memos: Annotated[MemoStore, Depends(get_memo_store)],
    comments: Annotated[CommentStore, Depends(get_comment_store)],
) -> CommentResponse:
    _require_storage(comments)
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Missing text")
    load_memo(memos, memo_id)

    comment = new_comment(
        text,
        parent_id=body.parent_id,
        at=body.at,
        line_index=body.line_index,
        start=body.start,
        end=body.end,
        quote_text=body.quote_text,
    )
    try:
        comments.update(memo_id, lambda existing: existing.append(comment))
    except StorageError as exc:
        logger.exception("Failed to save comment for memo %s", memo_id)
        raise HTTPException(status_code=500, detail="Failed to save comment") from exc
    return CommentResponse(comment=comment)


@router.post(
    "/api/memos/{memo_id}/comments/{comment_id}/reactions",
    response_model=CommentResponse,
)
def react(
    memo_id: str,
    comment_id: str,
    body: ReactionRequest,
    memos: Annotated[MemoStore, Depends(get_memo_store)],
    comments: Annotated[CommentStore, Depends(get_comment_store)],
) -> CommentResponse:
    """Add, remove or (with no ``action``) toggle the caller's emoji reaction."""
    _require_storage(comments)
    if not body.emoji:
        raise HTTPException(status_code=400, detail="Missing emoji")
    if not body.client_id:
        raise HTTPException(status_code=400, detail="Missing clientId")
    load_memo(memos, memo_id)

    def _toggle(existing: list[Comment]) -> Comment:
        return toggle_reaction(existing, comment_id, body.emoji, body.client_id, body.action)

    try:
        comment = comments.update(memo_id, _toggle)
    except CommentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Comment not found") from exc
    except StorageError as exc:
        logger.exception("Failed to update reactions on %s/%s", memo_id, comment_id)
        raise HTTPException(status_code=500, detail="Failed to update reactions") from exc
    return CommentResponse(comment=comment)
