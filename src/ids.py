"""Opaque identifiers: base-36 millisecond timestamp plus a random suffix."""

from __future__ import annotations

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def new_id(timestamp_ms: int | None = None, suffix_len: int = 6) -> str:
    """Return a time-ordered, collision-resistant ID such as ``lq2x9c1kf3a0z``."""
    ts = now_ms() if timestamp_ms is None else timestamp_ms
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(suffix_len))
    return to_base36(ts) + suffix
