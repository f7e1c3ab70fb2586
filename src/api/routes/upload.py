"""Upload endpoint: store audio, create the memo record, start transcription."""

from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from src.api.dependencies import (
    get_audio_store,
    get_comment_store,
    get_ingestion_runner,
    get_memo_store,
    get_title_refiner,
    get_transcriber,
)
from src.api.models import UploadResponse
from src.config import settings
from src.extraction.titles import ChapterTitleRefiner
from src.ids import new_id, now_ms
from src.ingestion.models import Memo, ProcessingTranscript, UnavailableTranscript
from src.ingestion.pipeline import IngestionJob, IngestionRunner
from src.ingestion.storage import AudioStore, CommentStore, MemoStore, StorageError
from src.ingestion.transcription import OpenAITranscriber

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_EXTENSION = "webm"
DEFAULT_CONTENT_TYPE = "audio/webm"
_EXTENSION_RE = re.compile(r"^[a-z0-9]{1,8}$")


def _extension(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return ext if _EXTENSION_RE.match(ext) else DEFAULT_EXTENSION


@router.post("/api/upload", response_model=UploadResponse)
def upload(
    memos: Annotated[MemoStore, Depends(get_memo_store)],
    comments: Annotated[CommentStore, Depends(get_comment_store)],
    audio: Annotated[AudioStore, Depends(get_audio_store)],
    transcriber: Annotated[OpenAITranscriber | None, Depends(get_transcriber)],
    refiner: Annotated[ChapterTitleRefiner | None, Depends(get_title_refiner)],
    runner: Annotated[IngestionRunner, Depends(get_ingestion_runner)],
    file: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    """Accept a recording and acknowledge immediately.

    Transcription runs detached; clients poll ``/api/memos/{id}/transcript``.
    Without a transcription key the memo is created as ``unavailable``.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file")

    raw = file.file.read()
    if len(raw) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)} MB.",
        )

    memo_id = new_id()
    filename = f"{memo_id}.{_extension(file.filename or '')}"
    content_type = file.content_type or DEFAULT_CONTENT_TYPE

    try:
        url = audio.save(filename, raw, content_type)
        memo = Memo(
            id=memo_id,
            filename=filename,
            url=url,
            audio_url=url,
            content_type=content_type,
            created_at=now_ms(),
            transcript=ProcessingTranscript() if transcriber else UnavailableTranscript(),
        )
        memos.put(memo)
    except (StorageError, OSError) as exc:
        logger.exception("Upload failed for %s", filename)
        raise HTTPException(status_code=500, detail="Upload failed") from exc

    if transcriber is not None:
        runner.start(
            IngestionJob(
                memo=memo,
                audio=raw,
                transcriber=transcriber,
                memos=memos,
                comments=comments,
                refiner=refiner,
            )
        )

    return UploadResponse(
        id=memo_id,
        url=url,
        share_url=f"{settings.share_base_url.rstrip('/')}/s/{memo_id}",
    )
