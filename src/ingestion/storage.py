"""Object-store persistence for audio, memo records and comment lists.

Supabase Storage is used as a key-addressed blob store: every memo is one
JSON document and its comment list is a second one. There are no
conditional writes, so read-modify-write of a comment list is serialized
per memo inside this process only; writers in other processes can still
clobber each other (last write wins).
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import ValidationError
from storage3.utils import StorageException
from supabase import Client, create_client

from src.annotations.models import Comment
from src.config import settings
from src.ingestion.models import Memo

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """The backing object store failed (unreachable, rejected a write...)."""


class StorageUnavailableError(StorageError):
    """No object store is configured."""


class BlobStore(Protocol):
    def get(self, key: str) -> bytes | None:
        """Return the object's bytes, None if it does not exist."""
        ...

    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def public_url(self, key: str) -> str: ...


def _is_not_found(exc: StorageException) -> bool:
    """True for the storage API's "no such object" answers (404, or 400 "Object not found")."""
    details = exc.args[0] if exc.args and isinstance(exc.args[0], dict) else {}
    status = getattr(exc, "status", None) or details.get("statusCode")
    try:
        code = int(status)
    except (TypeError, ValueError):
        code = None
    if code == 404:
        return True
    message = str(details.get("message") or details.get("error") or exc).lower()
    return code in (400, None) and ("not found" in message or "not_found" in message)


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


class SupabaseBlobStore:
    """BlobStore over a single Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def _objects(self) -> Any:
        return self._client.storage.from_(self._bucket)

    def get(self, key: str) -> bytes | None:
        try:
            return self._objects().download(key)  # type: ignore[no-any-return]
        except httpx.TransportError as exc:
            raise StorageError(f"Object store unreachable reading {key}: {exc}") from exc
        except StorageException as exc:
            if _is_not_found(exc):
                logger.debug("Object %s not found", key)
                return None
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        except Exception as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._objects().upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc

    def public_url(self, key: str) -> str:
        return str(self._objects().get_public_url(key))


def blob_store_from_settings() -> SupabaseBlobStore | None:
    if not settings.storage_configured:
        logger.warning("Object storage not configured (SUPABASE_URL/SUPABASE_KEY missing)")
        return None
    return SupabaseBlobStore(get_supabase_client(), settings.storage_bucket)


def memo_key(prefix: str, memo_id: str) -> str:
    return f"{prefix}/{memo_id}.json"


def comments_key(prefix: str, memo_id: str) -> str:
    return f"{prefix}/{memo_id}.comments.json"


def audio_key(prefix: str, filename: str) -> str:
    return f"{prefix}/{filename}"


class MemoStore:
    """Memo records, one JSON document per memo ID.

    Reads never raise: missing, malformed, unconfigured and unreachable all
    come back as None, so callers cannot tell "no such memo" from "store down".
    """

    def __init__(self, blobs: BlobStore | None, prefix: str = "memos") -> None:
        self._blobs = blobs
        self._prefix = prefix

    def get(self, memo_id: str) -> Memo | None:
        if self._blobs is None:
            return None
        try:
            raw = self._blobs.get(memo_key(self._prefix, memo_id))
        except StorageError:
            logger.warning("Memo %s unreadable; treating as not found", memo_id, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return Memo.model_validate_json(raw)
        except ValidationError:
            logger.warning("Memo %s has a malformed record", memo_id)
            return None

    def put(self, memo: Memo) -> None:
        if self._blobs is None:
            logger.warning("Memo %s not persisted: object storage not configured", memo.id)
            return
        payload = json.dumps(memo.to_json()).encode("utf-8")
        self._blobs.put(memo_key(self._prefix, memo.id), payload, "application/json")


@dataclass
class _MemoLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class CommentStore:
    """Comment lists, one JSON document per memo ID.

    Unlike memo reads, failures here are loud: StorageUnavailableError when
    unconfigured, StorageError when the store is unreachable.
    """

    def __init__(self, blobs: BlobStore | None, prefix: str = "memos") -> None:
        self._blobs = blobs
        self._prefix = prefix
        self._locks: dict[str, _MemoLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def configured(self) -> bool:
        return self._blobs is not None

    def _require_blobs(self) -> BlobStore:
        if self._blobs is None:
            raise StorageUnavailableError("Comments storage unavailable (object store required)")
        return self._blobs

    def get(self, memo_id: str) -> list[Comment]:
        raw = self._require_blobs().get(comments_key(self._prefix, memo_id))
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Comment list for %s is not valid JSON; treating as empty", memo_id)
            return []

        if isinstance(data, dict):
            data = data.get("comments")
        if not isinstance(data, list):
            return []

        comments: list[Comment] = []
        for item in data:
            try:
                comments.append(Comment.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed comment in %s: %r", memo_id, item)
        return comments

    def put(self, memo_id: str, comments: list[Comment]) -> None:
        payload = json.dumps([c.to_json() for c in comments]).encode("utf-8")
        self._require_blobs().put(comments_key(self._prefix, memo_id), payload, "application/json")

    @contextmanager
    def lock(self, memo_id: str) -> Iterator[None]:
        """Serialize read-modify-write cycles on one memo's comments in this process.

        A memo's lock only exists while some thread holds or waits for it.
        """
        with self._locks_guard:
            entry = self._locks.get(memo_id)
            if entry is None:
                entry = self._locks[memo_id] = _MemoLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[memo_id]

    @property
    def locked_memos(self) -> int:
        with self._locks_guard:
            return len(self._locks)

    def update(self, memo_id: str, mutate: Callable[[list[Comment]], T]) -> T:
        """Read the list, let *mutate* change it in place, and write it back.

        The write is skipped when *mutate* leaves the list unchanged.
        """
        self._require_blobs()
        with self.lock(memo_id):
            comments = self.get(memo_id)
            before = [c.to_json() for c in comments]
            result = mutate(comments)
            if [c.to_json() for c in comments] != before:
                self.put(memo_id, comments)
            return result


class AudioStore:
    """Audio bytes on the object store, or on local disk when none is configured."""

    def __init__(
        self,
        blobs: BlobStore | None,
        local_dir: str | Path,
        prefix: str = "memos",
        public_base: str = "",
    ) -> None:
        self._blobs = blobs
        self._local_dir = Path(local_dir)
        self._prefix = prefix
        self._public_base = public_base

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        """Store the audio and return its public URL."""
        if self._blobs is not None:
            key = audio_key(self._prefix, filename)
            self._blobs.put(key, data, content_type)
            if self._public_base:
                return f"{self._public_base.rstrip('/')}/{key}"
            return self._blobs.public_url(key)

        self._local_dir.mkdir(parents=True, exist_ok=True)
        (self._local_dir / filename).write_bytes(data)
        return f"/u/{filename}"

    def load(self, filename: str) -> bytes | None:
        if self._blobs is not None:
            try:
                return self._blobs.get(audio_key(self._prefix, filename))
            except StorageError:
                logger.warning("Audio %s unreadable", filename, exc_info=True)
                return None

        path = self._local_dir / filename
        if path.name != filename or not path.is_file():
            return None
        return path.read_bytes()
