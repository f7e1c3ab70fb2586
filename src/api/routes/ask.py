"""Ask endpoint: answer a question from one memo's transcript."""

from __future__ import annotations

import logging
from typing import Annotated

from anthropic import APIStatusError
from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_memo_store
from src.api.models import AskRequest, AskResponse
from src.api.routes.memos import load_memo
from src.config import settings
from src.ingestion.models import ReadyTranscript
from src.ingestion.storage import MemoStore
from src.qa.generation import answer_question

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/memos/{memo_id}/ask", response_model=AskResponse)
def ask(
    memo_id: str,
    body: AskRequest,
    memos: Annotated[MemoStore, Depends(get_memo_store)],
) -> AskResponse:
    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Missing question")
    memo = load_memo(memos, memo_id)
    if not settings.anthropic_api_key:
        raise HTTPException(status_code=503, detail="QA unavailable (no ANTHROPIC_API_KEY)")

    transcript = memo.transcript
    transcript_text = transcript.plain_text() if isinstance(transcript, ReadyTranscript) else ""

    try:
        answer = answer_question(question, transcript_text)
    except APIStatusError as exc:
        # Claude overloaded (529) or other upstream error
        raise HTTPException(status_code=503, detail=f"LLM unavailable: {exc.message}") from exc
    except Exception as exc:
        logger.exception("QA failed for memo %s", memo_id)
        raise HTTPException(status_code=500, detail="QA failed") from exc

    return AskResponse(answer=answer)
