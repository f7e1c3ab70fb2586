"""Tests for smart-comment extraction and chapter title refinement (no external APIs)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from src.extraction.extractor import classify_line, extract_smart_comments
from src.extraction.models import SmartCommentKind
from src.extraction.titles import ChapterTitleRefiner
from src.ingestion.chapters import ChapterDraft
from src.ingestion.models import Line


def _line(text: str, start: float = 0.0) -> Line:
    return Line(text=text, start=start, end=start + 1.0, from_=0, to=0)


# ---------------------------------------------------------------------------
# Smart comments
# ---------------------------------------------------------------------------


class TestClassifyLine:
    def test_action_modal(self) -> None:
        assert classify_line("We need to follow up on this") is SmartCommentKind.ACTION

    def test_action_lets_opener(self) -> None:
        assert classify_line("Let's ship it on Monday") is SmartCommentKind.ACTION

    def test_action_keywords(self) -> None:
        for text in ("please email the team", "todo pick a venue", "deploy after lunch"):
            assert classify_line(text) is SmartCommentKind.ACTION, text

    def test_key_point(self) -> None:
        assert classify_line("This is an important note!") is SmartCommentKind.KEY

    def test_key_exclamation(self) -> None:
        assert classify_line("What a great quarter!") is SmartCommentKind.KEY

    def test_action_wins_over_key(self) -> None:
        assert classify_line("Important: we should fix the login bug") is SmartCommentKind.ACTION

    def test_neither(self) -> None:
        assert classify_line("The weather was nice yesterday") is None
        assert classify_line("   ") is None

    def test_word_boundaries(self) -> None:
        # "testing" / "sender" must not match \btest\b / \bsend\b
        assert classify_line("testing sender notes") is None


class TestExtractSmartComments:
    def test_labels_and_anchors(self) -> None:
        lines = [
            _line("nothing here", 0.0),
            _line("We need to   follow up\ton this", 4.0),
            _line("This is an important note!", 9.5),
        ]
        results = extract_smart_comments(lines)
        assert [(r.text, r.line_index, r.at) for r in results] == [
            ("Action: We need to follow up on this", 1, 4.0),
            ("Key: This is an important note!", 2, 9.5),
        ]

    def test_duplicates_collapse_case_insensitively(self) -> None:
        lines = [_line("We should fix it"), _line("we should FIX it"), _line("We should fix it")]
        results = extract_smart_comments(lines)
        assert len(results) == 1
        assert results[0].line_index == 0

    def test_capped_at_twelve(self) -> None:
        lines = [_line(f"We need to fix item {i}") for i in range(30)]
        assert len(extract_smart_comments(lines)) == 12

    def test_custom_limit(self) -> None:
        lines = [_line(f"We need to fix item {i}") for i in range(5)]
        assert len(extract_smart_comments(lines, limit=2)) == 2

    def test_empty(self) -> None:
        assert extract_smart_comments([]) == []


# ---------------------------------------------------------------------------
# Title refinement
# ---------------------------------------------------------------------------


def _drafts() -> list[ChapterDraft]:
    return [
        ChapterDraft(start=0.0, end=5.0, text="we talked about the budget " * 30, title="We Talked About the Budget"),
        ChapterDraft(start=8.0, end=12.0, text="then the launch plan", title="Then the Launch Plan"),
    ]


def _tool_response(payload: object) -> MagicMock:
    response = MagicMock()
    block = MagicMock()
    block.type = "tool_use"
    block.name = "store_chapter_titles"
    block.input = payload
    response.content = [block]
    return response


class TestChapterTitleRefiner:
    def test_refined_titles_used_and_trimmed(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = _tool_response(
            {"titles": ["Budget Review", "Launch plan for the new product line"]}
        )
        titles = ChapterTitleRefiner(client, "test-model").refine(_drafts())
        assert titles == ["Budget Review", "Launch plan for the new product"]

    def test_single_batched_request_with_trimmed_excerpts(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = _tool_response({"titles": ["A", "B"]})
        ChapterTitleRefiner(client, "test-model", excerpt_chars=40).refine(_drafts())

        assert client.messages.create.call_count == 1
        prompt = client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert "Chapter 1:" in prompt and "Chapter 2:" in prompt
        # The long first chapter is cut down to the excerpt length
        assert "we talked about the budget " * 3 not in prompt

    def test_string_tool_input(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = _tool_response(json.dumps({"titles": ["One", "Two"]}))
        assert ChapterTitleRefiner(client, "m").refine(_drafts()) == ["One", "Two"]

    def test_api_failure_falls_back(self) -> None:
        client = MagicMock()
        client.messages.create.side_effect = RuntimeError("network down")
        titles = ChapterTitleRefiner(client, "m").refine(_drafts())
        assert titles == ["We Talked About the Budget", "Then the Launch Plan"]

    def test_short_array_falls_back(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = _tool_response({"titles": ["Only one"]})
        titles = ChapterTitleRefiner(client, "m").refine(_drafts())
        assert titles == ["We Talked About the Budget", "Then the Launch Plan"]

    def test_missing_tool_block_falls_back(self) -> None:
        client = MagicMock()
        response = MagicMock()
        text_block = MagicMock()
        text_block.type = "text"
        response.content = [text_block]
        client.messages.create.return_value = response
        titles = ChapterTitleRefiner(client, "m").refine(_drafts())
        assert titles == ["We Talked About the Budget", "Then the Launch Plan"]

    def test_blank_title_falls_back_per_chapter(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = _tool_response({"titles": ["  ", "Launch"]})
        titles = ChapterTitleRefiner(client, "m").refine(_drafts())
        assert titles == ["We Talked About the Budget", "Launch"]

    def test_no_chapters_no_request(self) -> None:
        client = MagicMock()
        assert ChapterTitleRefiner(client, "m").refine([]) == []
        client.messages.create.assert_not_called()
