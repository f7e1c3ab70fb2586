"""Speech-to-text via OpenAI Whisper, with transient-failure retries."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import openai
from openai import OpenAI

from src.config import settings
from src.ingestion.models import Segment

logger = logging.getLogger(__name__)

# Message fragments that indicate a network blip when the exception type says nothing
_TIMEOUT_HINTS = ("timeout", "timed out")
_CONNECTION_HINTS = ("econnreset", "connection reset", "connection error", "fetch failed")


class ProviderErrorKind(str, Enum):
    """Classification of provider failures, decided at the client boundary."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"

    @property
    def retryable(self) -> bool:
        return self is not ProviderErrorKind.FATAL


class TranscriptionError(Exception):
    """Raised when transcription fails for good (fatal error or retries exhausted)."""

    def __init__(self, kind: ProviderErrorKind, attempts: int, message: str = "") -> None:
        super().__init__(message or f"Transcription failed ({kind.value}) after {attempts} attempt(s)")
        self.kind = kind
        self.attempts = attempts


@dataclass
class TranscriptionResult:
    text: str
    segments: list[Segment]


def classify_provider_error(exc: BaseException) -> ProviderErrorKind:
    """Map an exception raised by the provider SDK to a ProviderErrorKind."""
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(exc, openai.APITimeoutError | TimeoutError):
        return ProviderErrorKind.TIMEOUT
    if isinstance(exc, openai.RateLimitError):
        return ProviderErrorKind.RATE_LIMITED
    if isinstance(exc, openai.APIConnectionError | ConnectionError):
        return ProviderErrorKind.CONNECTION
    if isinstance(exc, openai.APIStatusError):
        return ProviderErrorKind.FATAL

    messages = [str(exc).lower()]
    if exc.__cause__ is not None:
        messages.append(str(exc.__cause__).lower())
    for msg in messages:
        if any(hint in msg for hint in _TIMEOUT_HINTS):
            return ProviderErrorKind.TIMEOUT
        if any(hint in msg for hint in _CONNECTION_HINTS):
            return ProviderErrorKind.CONNECTION
    return ProviderErrorKind.FATAL


def _segments_from_response(response: Any) -> list[Segment]:
    segments: list[Segment] = []
    for seg in getattr(response, "segments", None) or []:
        # SDK objects in normal use; plain dicts when the response is raw JSON
        get = seg.get if isinstance(seg, dict) else lambda name, s=seg: getattr(s, name, None)
        start, end = get("start"), get("end")
        segments.append(
            Segment(
                text=get("text") or "",
                start=float(start) if isinstance(start, int | float) else None,
                end=float(end) if isinstance(end, int | float) else None,
            )
        )
    return segments


class OpenAITranscriber:
    """Transcribe audio bytes into timed segments.

    The SDK's built-in retries are disabled; this class owns the retry
    budget so that ``max_attempts`` is the real number of provider calls.
    """

    def __init__(
        self,
        client: OpenAI,
        model: str = "whisper-1",
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._model = model
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls) -> OpenAITranscriber | None:
        """Build from settings, or return None when no API key is configured."""
        if not settings.openai_api_key:
            return None
        client = OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.transcription_timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            model=settings.transcription_model,
            max_attempts=settings.transcription_max_attempts,
            backoff_seconds=settings.transcription_backoff_seconds,
        )

    def transcribe(self, audio: bytes, filename: str) -> TranscriptionResult:
        """Call the provider, retrying transient failures with linear backoff.

        Raises:
            TranscriptionError: On a fatal error or once attempts are exhausted.
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = self._client.audio.transcriptions.create(
                    file=(filename, audio),
                    model=self._model,
                    response_format="verbose_json",
                )
            except Exception as exc:
                kind = classify_provider_error(exc)
                logger.warning(
                    "Transcription attempt %d/%d for %s failed (%s): %s",
                    attempt,
                    self._max_attempts,
                    filename,
                    kind.value,
                    exc,
                )
                if kind.retryable and attempt < self._max_attempts:
                    self._sleep(self._backoff_seconds * attempt)
                    continue
                raise TranscriptionError(kind, attempt, str(exc)) from exc

            segments = _segments_from_response(response)
            text = getattr(response, "text", None)
            if not isinstance(text, str):
                text = " ".join(s.text.strip() for s in segments).strip()
            return TranscriptionResult(text=text, segments=segments)

        # Unreachable: the loop either returns or raises
        raise TranscriptionError(ProviderErrorKind.FATAL, self._max_attempts)
