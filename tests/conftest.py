"""Shared fixtures: an in-memory blob store and an app wired to it."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_audio_store,
    get_comment_store,
    get_ingestion_runner,
    get_memo_store,
    get_title_refiner,
    get_transcriber,
)
from src.api.main import app
from src.ingestion.models import Segment
from src.ingestion.pipeline import IngestionRunner
from src.ingestion.storage import AudioStore, CommentStore, MemoStore
from src.ingestion.transcription import TranscriptionResult


class InMemoryBlobStore:
    """Dict-backed stand-in for the Supabase bucket."""

    def __init__(self, read_delay: float = 0.0) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.put_count = 0
        self._read_delay = read_delay
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            data = self.objects.get(key)
        if self._read_delay:
            time.sleep(self._read_delay)
        return data

    def put(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self.objects[key] = bytes(data)
            self.content_types[key] = content_type
            self.put_count += 1

    def public_url(self, key: str) -> str:
        return f"https://storage.test/{key}"


class FakeTranscriber:
    """Returns canned segments, or raises the configured error."""

    def __init__(self, segments: list[Segment] | None = None, error: Exception | None = None) -> None:
        self.segments = segments or []
        self.error = error
        self.calls: list[str] = []

    def transcribe(self, audio: bytes, filename: str) -> TranscriptionResult:
        self.calls.append(filename)
        if self.error is not None:
            raise self.error
        text = " ".join(s.text.strip() for s in self.segments).strip()
        return TranscriptionResult(text=text, segments=list(self.segments))


SAMPLE_SEGMENTS = [
    Segment(start=0.0, end=4.0, text="Welcome to the weekly product sync everyone."),
    Segment(start=4.0, end=8.0, text="We need to follow up on the pricing page today."),
    Segment(start=12.0, end=15.0, text="This is an important note about launch!"),
]


@dataclass
class Services:
    blobs: InMemoryBlobStore
    memos: MemoStore
    comments: CommentStore
    audio: AudioStore
    runner: IngestionRunner = field(default_factory=IngestionRunner)
    transcriber: FakeTranscriber | None = None


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def services(blobs: InMemoryBlobStore, tmp_path: Path) -> Services:
    return Services(
        blobs=blobs,
        memos=MemoStore(blobs),
        comments=CommentStore(blobs),
        audio=AudioStore(blobs, tmp_path / "uploads"),
    )


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    app.dependency_overrides.update(
        {
            get_memo_store: lambda: services.memos,
            get_comment_store: lambda: services.comments,
            get_audio_store: lambda: services.audio,
            get_transcriber: lambda: services.transcriber,
            get_title_refiner: lambda: None,
            get_ingestion_runner: lambda: services.runner,
        }
    )
    try:
        yield TestClient(app)
    finally:
        services.runner.wait_all(timeout=5.0)
        app.dependency_overrides.clear()
