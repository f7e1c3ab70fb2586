"""HTTP client wrapper for the Voice Memos FastAPI backend."""

from __future__ import annotations

import os
import secrets
import time
from pathlib import Path
from typing import Any

import httpx

API_URL = os.getenv("API_URL", "http://localhost:8000")
CLIENT_ID_PATH = Path(os.getenv("VOICE_MEMOS_CLIENT_ID_PATH", "~/.voice-memos/client_id")).expanduser()


class TranscriptTimeoutError(TimeoutError):
    """The transcript was still processing when the polling deadline passed."""


def load_client_id(path: Path = CLIENT_ID_PATH) -> str:
    """Return this machine's reaction client ID, creating and storing it on first use."""
    try:
        existing = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        existing = ""
    if existing:
        return existing

    client_id = secrets.token_hex(16)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(client_id, encoding="utf-8")
    return client_id


class MemoClient:
    """Thin wrapper over the REST API.

    Accepts any ``httpx.Client`` (including FastAPI's ``TestClient``).
    Non-2xx responses raise ``httpx.HTTPStatusError``, except the transcript
    poll, which interprets 202/500 itself.
    """

    def __init__(self, http: httpx.Client | None = None, client_id: str | None = None) -> None:
        self._http = http or httpx.Client(base_url=API_URL, timeout=60.0)
        self._client_id = client_id

    @property
    def client_id(self) -> str:
        if self._client_id is None:
            self._client_id = load_client_id()
        return self._client_id

    def upload(self, audio: bytes, filename: str = "memo.webm", content_type: str = "audio/webm") -> dict[str, Any]:
        r = self._http.post("/api/upload", files={"file": (filename, audio, content_type)})
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]

    def get_memo(self, memo_id: str) -> dict[str, Any]:
        r = self._http.get(f"/api/memos/{memo_id}")
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]

    def wait_for_transcript(
        self,
        memo_id: str,
        interval: float = 2.0,
        timeout: float = 300.0,
    ) -> dict[str, Any]:
        """Poll until the transcript leaves ``processing``.

        Returns the final payload (``ready``, ``error`` or ``unavailable``).

        Raises:
            TranscriptTimeoutError: If still processing after *timeout* seconds.
        """
        deadline = time.monotonic() + timeout
        while True:
            r = self._http.get(f"/api/memos/{memo_id}/transcript")
            if r.status_code == 202:
                if time.monotonic() >= deadline:
                    raise TranscriptTimeoutError(f"Transcript for {memo_id} still processing")
                time.sleep(interval)
                continue
            if r.status_code == 500 and r.json().get("status") == "error":
                return r.json()  # type: ignore[no-any-return]
            r.raise_for_status()
            return r.json()  # type: ignore[no-any-return]

    def list_comments(self, memo_id: str) -> list[dict[str, Any]]:
        r = self._http.get(f"/api/memos/{memo_id}/comments")
        r.raise_for_status()
        return r.json()["comments"]  # type: ignore[no-any-return]

    def post_comment(self, memo_id: str, text: str, **anchor: Any) -> dict[str, Any]:
        """Post a comment; *anchor* takes ``parentId``, ``at``, ``lineIndex``, ``start``, ``end``, ``quoteText``."""
        payload = {"text": text, **{k: v for k, v in anchor.items() if v is not None}}
        r = self._http.post(f"/api/memos/{memo_id}/comments", json=payload)
        r.raise_for_status()
        return r.json()["comment"]  # type: ignore[no-any-return]

    def react(self, memo_id: str, comment_id: str, emoji: str, action: str | None = None) -> dict[str, Any]:
        payload: dict[str, str] = {"emoji": emoji, "clientId": self.client_id}
        if action:
            payload["action"] = action
        r = self._http.post(f"/api/memos/{memo_id}/comments/{comment_id}/reactions", json=payload)
        r.raise_for_status()
        return r.json()["comment"]  # type: ignore[no-any-return]

    def ask(self, memo_id: str, question: str) -> str:
        r = self._http.post(f"/api/memos/{memo_id}/ask", json={"question": question})
        r.raise_for_status()
        return r.json()["answer"]  # type: ignore[no-any-return]
