"""Process-wide service instances, injected into routes with ``Depends``.

Tests replace these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from src.config import settings
from src.extraction.titles import ChapterTitleRefiner
from src.ingestion.pipeline import IngestionRunner
from src.ingestion.storage import (
    AudioStore,
    BlobStore,
    CommentStore,
    MemoStore,
    blob_store_from_settings,
)
from src.ingestion.transcription import OpenAITranscriber


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore | None:
    return blob_store_from_settings()


@lru_cache(maxsize=1)
def get_memo_store() -> MemoStore:
    return MemoStore(get_blob_store(), settings.storage_prefix)


@lru_cache(maxsize=1)
def get_comment_store() -> CommentStore:
    # Single instance: its per-memo locks must be shared by every writer
    return CommentStore(get_blob_store(), settings.storage_prefix)


@lru_cache(maxsize=1)
def get_audio_store() -> AudioStore:
    return AudioStore(
        get_blob_store(),
        settings.uploads_dir,
        prefix=settings.storage_prefix,
        public_base=settings.public_audio_base,
    )


@lru_cache(maxsize=1)
def get_transcriber() -> OpenAITranscriber | None:
    return OpenAITranscriber.from_settings()


@lru_cache(maxsize=1)
def get_title_refiner() -> ChapterTitleRefiner | None:
    return ChapterTitleRefiner.from_settings()


@lru_cache(maxsize=1)
def get_ingestion_runner() -> IngestionRunner:
    return IngestionRunner()
