"""Memo endpoints: record, transcript status, audio bytes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from fastapi.responses import JSONResponse

from src.api.dependencies import get_audio_store, get_memo_store
from src.api.ranges import RangeNotSatisfiableError, content_range, parse_byte_range
from src.ingestion.models import (
    ErrorTranscript,
    Memo,
    ReadyTranscript,
    UnavailableTranscript,
)
from src.ingestion.storage import AudioStore, MemoStore

router = APIRouter()


def load_memo(memos: MemoStore, memo_id: str) -> Memo:
    memo = memos.get(memo_id)
    if memo is None:
        raise HTTPException(status_code=404, detail="Memo not found")
    return memo


@router.get("/api/memos/{memo_id}", response_model=Memo)
def get_memo(memo_id: str, memos: Annotated[MemoStore, Depends(get_memo_store)]) -> Memo:
    return load_memo(memos, memo_id)


@router.get("/api/memos/{memo_id}/transcript")
def get_transcript(memo_id: str, memos: Annotated[MemoStore, Depends(get_memo_store)]) -> JSONResponse:
    """Poll transcript readiness.

    202 while processing, 200 when ready (or permanently unavailable),
    500 when transcription failed.
    """
    transcript = load_memo(memos, memo_id).transcript

    if isinstance(transcript, ReadyTranscript):
        payload = transcript.to_json()
        return JSONResponse(
            status_code=200,
            content={
                "status": "ready",
                "words": payload["words"],
                "lines": payload["lines"],
                "chapters": payload["chapters"],
            },
        )
    if isinstance(transcript, ErrorTranscript):
        return JSONResponse(status_code=500, content={"status": "error"})
    if isinstance(transcript, UnavailableTranscript):
        return JSONResponse(status_code=200, content={"status": "unavailable"})
    return JSONResponse(status_code=202, content={"status": "processing"})


@router.get("/api/memos/{memo_id}/audio")
def get_audio(
    memo_id: str,
    memos: Annotated[MemoStore, Depends(get_memo_store)],
    audio: Annotated[AudioStore, Depends(get_audio_store)],
    range_header: Annotated[str | None, Header(alias="range")] = None,
) -> Response:
    """Serve the recording, honouring a single ``Range: bytes=...`` request."""
    memo = load_memo(memos, memo_id)
    data = audio.load(memo.filename)
    if data is None:
        raise HTTPException(status_code=404, detail="Audio not found")

    size = len(data)
    headers = {"Accept-Ranges": "bytes"}
    try:
        byte_range = parse_byte_range(range_header, size)
    except RangeNotSatisfiableError:
        return Response(status_code=416, headers={**headers, "Content-Range": f"bytes */{size}"})

    if byte_range is None:
        return Response(content=data, media_type=memo.content_type, headers=headers)

    first, last = byte_range
    headers["Content-Range"] = content_range(first, last, size)
    return Response(
        content=data[first : last + 1],
        status_code=206,
        media_type=memo.content_type,
        headers=headers,
    )
