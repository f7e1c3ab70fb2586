"""Tests for Settings, DerivationConfig and the state enums."""

from __future__ import annotations

import dataclasses

import pytest

from src.config import Settings
from src.pipeline_config import (
    DEFAULT_DERIVATION,
    DerivationConfig,
    IngestionState,
    ReactionAction,
)

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestIngestionState:
    def test_values(self) -> None:
        assert [s.value for s in IngestionState] == ["uploaded", "transcribing", "ready", "error"]

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(IngestionState.READY, str)


class TestReactionAction:
    def test_values(self) -> None:
        assert ReactionAction("add") is ReactionAction.ADD
        assert ReactionAction("remove") is ReactionAction.REMOVE

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            ReactionAction("toggle")


# ---------------------------------------------------------------------------
# DerivationConfig tests
# ---------------------------------------------------------------------------


class TestDerivationConfig:
    def test_defaults(self) -> None:
        config = DerivationConfig()
        assert config.words_per_line == 8
        assert config.chapter_gap_seconds == 2.5
        assert config.chapter_max_chars == 200
        assert config.chapter_title_words == 6
        assert config.smart_comment_limit == 12

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_DERIVATION.words_per_line = 4  # type: ignore[misc]

    def test_override(self) -> None:
        config = DerivationConfig(words_per_line=4, chapter_gap_seconds=1.0)
        assert config.words_per_line == 4
        assert config.chapter_max_chars == 200


# ---------------------------------------------------------------------------
# Settings tests
# ---------------------------------------------------------------------------


class TestSettings:
    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "OPENAI_API_KEY",
            "ANTHROPIC_API_KEY",
            "SUPABASE_URL",
            "SUPABASE_KEY",
            "SHARE_BASE_URL",
            "MAX_UPLOAD_BYTES",
            "TRANSCRIPTION_MAX_ATTEMPTS",
            "CHAPTER_TITLE_REFINEMENT",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.openai_api_key == ""
        assert s.storage_bucket == "memos"
        assert s.share_base_url == "http://localhost:5173"
        assert s.max_upload_bytes == 50 * 1024 * 1024
        assert s.transcription_model == "whisper-1"
        assert s.transcription_max_attempts == 3
        assert s.transcription_backoff_seconds == 0.5
        assert s.chapter_title_refinement is True
        assert not s.storage_configured

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "service-key")
        monkeypatch.setenv("SHARE_BASE_URL", "https://memos.example.com")
        monkeypatch.setenv("TRANSCRIPTION_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("CHAPTER_TITLE_REFINEMENT", "false")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.storage_configured
        assert s.share_base_url == "https://memos.example.com"
        assert s.transcription_max_attempts == 5
        assert s.chapter_title_refinement is False

    def test_storage_needs_both_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
        assert not Settings(_env_file=None).storage_configured  # type: ignore[call-arg]
