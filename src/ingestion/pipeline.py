"""Ingestion pipeline: transcribe -> derive words/lines/chapters -> finalize -> smart comments."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from src.annotations.models import Comment
from src.annotations.threads import merge_smart_comments
from src.extraction.extractor import extract_smart_comments
from src.ingestion.chapters import ChapterDraft, build_chapters
from src.ingestion.models import ErrorTranscript, Memo, ReadyTranscript
from src.ingestion.storage import CommentStore, MemoStore
from src.ingestion.transcription import TranscriptionError, TranscriptionResult
from src.ingestion.words import build_word_timings, group_words_into_lines
from src.pipeline_config import DEFAULT_DERIVATION, DerivationConfig, IngestionState

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    def transcribe(self, audio: bytes, filename: str) -> TranscriptionResult: ...


class TitleRefiner(Protocol):
    def refine(self, drafts: list[ChapterDraft]) -> list[str]: ...


def derive_transcript(
    result: TranscriptionResult,
    refiner: TitleRefiner | None = None,
    config: DerivationConfig = DEFAULT_DERIVATION,
) -> ReadyTranscript:
    """Build the ready transcript payload from provider output.

    Args:
        result: Provider text and segments.
        refiner: Optional LLM title refiner; heuristic titles are kept without one.
        config: Derivation constants.

    Returns:
        A ``ready`` transcript with words, lines and chapters.
    """
    words = build_word_timings(result.segments)
    lines = group_words_into_lines(words, size=config.words_per_line)
    drafts = build_chapters(result.segments, config)
    if refiner is not None and drafts:
        for draft, title in zip(drafts, refiner.refine(drafts), strict=True):
            draft.title = title

    return ReadyTranscript(
        text=result.text,
        words=words,
        lines=lines,
        chapters=[d.to_chapter() for d in drafts],
    )


def merge_auto_comments(memo_id: str, transcript: ReadyTranscript, comments: CommentStore) -> int:
    """Persist smart comments for *transcript*; returns how many were added."""
    smart = extract_smart_comments(transcript.lines)
    if not smart:
        return 0

    def _merge(existing: list[Comment]) -> int:
        merged = merge_smart_comments(existing, smart)
        added = merged[len(existing) :]
        existing.extend(added)
        return len(added)

    return comments.update(memo_id, _merge)


@dataclass
class IngestionJob:
    memo: Memo
    audio: bytes
    transcriber: Transcriber
    memos: MemoStore
    comments: CommentStore
    refiner: TitleRefiner | None = None
    config: DerivationConfig = field(default_factory=DerivationConfig)


def run_ingestion(job: IngestionJob, on_state: Callable[[IngestionState], None] | None = None) -> Memo:
    """Run one memo through transcription to its terminal state.

    Never raises: every failure ends in an ``error`` record (or, if even that
    write fails, a log line and a memo stuck in ``processing``).
    """

    def _enter(state: IngestionState) -> None:
        logger.info("Memo %s -> %s", job.memo.id, state.value)
        if on_state is not None:
            on_state(state)

    memo = job.memo
    _enter(IngestionState.TRANSCRIBING)
    try:
        result = job.transcriber.transcribe(job.audio, memo.filename)
        transcript = derive_transcript(result, job.refiner, job.config)
    except TranscriptionError as exc:
        logger.error("Transcription failed for memo %s: %s", memo.id, exc)
        return _finalize_error(job, on_state=_enter)
    except Exception:
        logger.exception("Ingestion failed for memo %s", memo.id)
        return _finalize_error(job, on_state=_enter)

    ready = memo.model_copy(update={"transcript": transcript, "segments": result.segments})
    try:
        job.memos.put(ready)
    except Exception:
        logger.exception("Failed to store ready transcript for memo %s", memo.id)
        return _finalize_error(job, on_state=_enter)
    _enter(IngestionState.READY)

    # Best effort: the transcript is already final
    try:
        added = merge_auto_comments(memo.id, transcript, job.comments)
        if added:
            logger.info("Added %d smart comments to memo %s", added, memo.id)
    except Exception:
        logger.exception("Smart comment merge failed for memo %s", memo.id)

    return ready


def _finalize_error(job: IngestionJob, on_state: Callable[[IngestionState], None]) -> Memo:
    failed = job.memo.model_copy(update={"transcript": ErrorTranscript()})
    try:
        job.memos.put(failed)
    except Exception:
        logger.exception("Failed to record error state for memo %s", job.memo.id)
    on_state(IngestionState.ERROR)
    return failed


class IngestionHandle:
    """Observable handle for one detached ingestion run."""

    def __init__(self, memo_id: str) -> None:
        self.memo_id = memo_id
        self.state = IngestionState.UPLOADED
        self.result: Memo | None = None
        self._done = threading.Event()

    def _set_state(self, state: IngestionState) -> None:
        self.state = state

    def _run(self, job: IngestionJob, on_finish: Callable[[], None]) -> None:
        try:
            self.result = run_ingestion(job, on_state=self._set_state)
        finally:
            on_finish()
            self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the run finishes; returns False on timeout."""
        return self._done.wait(timeout)


class IngestionRunner:
    """Starts one daemon thread per upload and tracks it until it finishes.

    Only in-flight runs are tracked; a finished run is forgotten before its
    handle reports done. There is no queue and nothing is persisted: a
    process crash leaves the memo in ``processing``.
    """

    def __init__(self) -> None:
        self._handles: dict[str, IngestionHandle] = {}
        self._lock = threading.Lock()

    def start(self, job: IngestionJob) -> IngestionHandle:
        handle = IngestionHandle(job.memo.id)
        thread = threading.Thread(
            target=handle._run,
            args=(job, lambda: self._forget(handle)),
            name=f"ingest-{job.memo.id}",
            daemon=True,
        )
        with self._lock:
            self._handles[job.memo.id] = handle
        thread.start()
        return handle

    def _forget(self, handle: IngestionHandle) -> None:
        with self._lock:
            if self._handles.get(handle.memo_id) is handle:
                del self._handles[handle.memo_id]

    def get(self, memo_id: str) -> IngestionHandle | None:
        """The in-flight run for *memo_id*, or None once it has finished."""
        with self._lock:
            return self._handles.get(memo_id)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._handles)

    def wait_all(self, timeout: float | None = None) -> bool:
        with self._lock:
            handles = list(self._handles.values())
        return all(h.wait(timeout) for h in handles)
