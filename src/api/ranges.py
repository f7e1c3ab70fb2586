"""HTTP byte-range parsing for audio streaming."""

from __future__ import annotations

import re

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


class RangeNotSatisfiableError(ValueError):
    def __init__(self, size: int) -> None:
        super().__init__(f"Range not satisfiable for {size} bytes")
        self.size = size


def parse_byte_range(header: str | None, size: int) -> tuple[int, int] | None:
    """Parse a single ``Range`` header into inclusive ``(first, last)`` offsets.

    Returns None when there is no usable range (absent, malformed or
    multi-range), meaning the whole body should be sent.

    Raises:
        RangeNotSatisfiableError: If the range lies entirely past the end.
    """
    if not header:
        return None
    match = _RANGE_RE.match(header.strip())
    if match is None:
        return None

    first_s, last_s = match.groups()
    if not first_s and not last_s:
        return None

    if not first_s:
        # Suffix range: the final N bytes
        suffix = int(last_s)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return max(0, size - suffix), size - 1

    first = int(first_s)
    if last_s and int(last_s) < first:
        return None
    if first >= size:
        raise RangeNotSatisfiableError(size)
    last = int(last_s) if last_s else size - 1
    return first, min(last, size - 1)


def content_range(first: int, last: int, size: int) -> str:
    return f"bytes {first}-{last}/{size}"
