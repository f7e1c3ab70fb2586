"""Data models for memos and their derived transcript artifacts.

Everything here is persisted as JSON on the object store, so the models
serialize with camelCase keys (``createdAt``, ``audioUrl``...).
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    """Base for camelCase JSON documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:  # type: ignore[type-arg]
        return self.model_dump(mode="json", by_alias=True)


class Segment(Document):
    """A coarse transcript chunk as returned by the speech provider."""

    text: str = ""
    start: float | None = None
    end: float | None = None


class Word(Document):
    text: str
    start: float
    end: float


class Line(Document):
    """A fixed-size run of words; ``from``/``to`` are inclusive word indices."""

    text: str
    start: float
    end: float
    from_: int = Field(alias="from")
    to: int


class Chapter(Document):
    title: str
    start: float
    end: float


class ProcessingTranscript(Document):
    status: Literal["processing"] = "processing"


class UnavailableTranscript(Document):
    status: Literal["unavailable"] = "unavailable"


class ErrorTranscript(Document):
    status: Literal["error"] = "error"


class ReadyTranscript(Document):
    status: Literal["ready"] = "ready"
    text: str = ""
    words: list[Word] = []
    lines: list[Line] = []
    chapters: list[Chapter] = []
    source: str = "openai"

    def plain_text(self) -> str:
        """Transcript text as used for QA: every line joined by spaces."""
        return " ".join(line.text for line in self.lines)


Transcript = Annotated[
    Union[ProcessingTranscript, UnavailableTranscript, ErrorTranscript, ReadyTranscript],
    Field(discriminator="status"),
]


class Memo(Document):
    """The authoritative record for one recording and its derived artifacts."""

    id: str
    filename: str
    url: str
    audio_url: str
    content_type: str = "audio/webm"
    created_at: int
    transcript: Transcript = Field(default_factory=ProcessingTranscript)
    segments: list[Segment] = []
