from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""  # Speech-to-text; memos are "unavailable" without it
    anthropic_api_key: str = ""  # Transcript QA and chapter title refinement

    # Supabase Storage (object store for audio, memo records and comment lists)
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "memos"
    storage_prefix: str = "memos"
    public_audio_base: str = ""

    # Local fallback for audio bytes when no object store is configured
    uploads_dir: str = "uploads"

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    share_base_url: str = "http://localhost:5173"
    max_upload_bytes: int = 50 * 1024 * 1024
    log_level: str = "INFO"

    # Transcription
    transcription_model: str = "whisper-1"
    transcription_timeout_seconds: float = 120.0
    transcription_max_attempts: int = 3
    transcription_backoff_seconds: float = 0.5

    # LLM
    llm_model: str = "claude-sonnet-4-20250514"
    qa_max_tokens: int = 1024
    chapter_title_refinement: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
