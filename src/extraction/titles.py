"""Claude-powered refinement of heuristic chapter titles."""

from __future__ import annotations

import json
import logging
from typing import Any

from anthropic import Anthropic

from src.config import settings
from src.ingestion.chapters import ChapterDraft
from src.pipeline_config import DEFAULT_DERIVATION

logger = logging.getLogger(__name__)

# Tool definition for Claude structured output
TITLES_TOOL: dict[str, Any] = {
    "name": "store_chapter_titles",
    "description": (
        "Store one short title per chapter of a voice memo transcript. "
        "Call this once with all titles, in chapter order."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "titles": {
                "type": "array",
                "description": "Titles in the same order as the chapters given.",
                "items": {
                    "type": "string",
                    "description": "A noun phrase of at most six words.",
                },
            },
        },
        "required": ["titles"],
    },
}

SYSTEM_PROMPT = (
    "You title chapters of voice memo transcripts. For every chapter excerpt, "
    "write a short noun-phrase title of at most six words that names its topic. "
    "No quotes, no trailing punctuation. "
    "Use the store_chapter_titles tool to return exactly one title per chapter."
)


def _excerpt(text: str, max_chars: int) -> str:
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "…"


def _parse_titles(response: Any) -> list[Any] | None:
    """Pull the titles array out of the tool_use block, or None if absent."""
    for block in response.content:
        if block.type != "tool_use" or block.name != TITLES_TOOL["name"]:
            continue
        data = block.input
        if isinstance(data, str):
            data = json.loads(data)
        titles = data.get("titles")
        if isinstance(titles, list):
            return titles
    return None


class ChapterTitleRefiner:
    """Ask Claude for better chapter titles, keeping heuristic titles on any failure."""

    def __init__(
        self,
        client: Anthropic,
        model: str,
        max_words: int = DEFAULT_DERIVATION.chapter_title_words,
        excerpt_chars: int = DEFAULT_DERIVATION.chapter_excerpt_chars,
    ) -> None:
        self._client = client
        self._model = model
        self._max_words = max_words
        self._excerpt_chars = excerpt_chars

    @classmethod
    def from_settings(cls) -> ChapterTitleRefiner | None:
        if not (settings.anthropic_api_key and settings.chapter_title_refinement):
            return None
        return cls(Anthropic(api_key=settings.anthropic_api_key), settings.llm_model)

    def refine(self, drafts: list[ChapterDraft]) -> list[str]:
        """Return one title per draft; falls back per chapter to ``draft.title``."""
        fallback = [d.title for d in drafts]
        if not drafts:
            return fallback

        listing = "\n\n".join(
            f"Chapter {i + 1}:\n{_excerpt(d.text, self._excerpt_chars)}" for i, d in enumerate(drafts)
        )
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=512,
                system=SYSTEM_PROMPT,
                tools=[TITLES_TOOL],
                tool_choice={"type": "tool", "name": TITLES_TOOL["name"]},
                messages=[
                    {
                        "role": "user",
                        "content": f"Title these {len(drafts)} chapters:\n\n{listing}",
                    }
                ],
            )
            titles = _parse_titles(response)
        except Exception:
            logger.warning("Chapter title refinement failed; keeping heuristic titles", exc_info=True)
            return fallback

        if titles is None or len(titles) < len(drafts):
            logger.warning(
                "Chapter title refinement returned %s titles for %d chapters",
                "no" if titles is None else len(titles),
                len(drafts),
            )
            return fallback

        refined: list[str] = []
        for candidate, default in zip(titles, fallback):
            words = str(candidate).strip().strip("\"'").split() if candidate else []
            refined.append(" ".join(words[: self._max_words]) if words else default)
        return refined
