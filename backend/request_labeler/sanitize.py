"""Body redaction applied before a request record is persisted."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

COMPLEX_PLACEHOLDER = "[Complex Data]"
TOO_LARGE_PLACEHOLDER = "[Data too large to log]"

_SCALARS = (str, bytes, int, float, bool, type(None))


def _byte_length(value: Any) -> int:
    if isinstance(value, bytes):
        return len(value)
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    return len(str(value).encode("utf-8"))


def sanitize(body: Mapping[str, Any], max_size: int = 1024) -> dict[str, Any]:
    """Replace composite values and scalars longer than ``max_size`` bytes.

    Every field is judged on its own; key order is kept.
    """
    processed: dict[str, Any] = {}
    for key, value in body.items():
        if not isinstance(value, _SCALARS):
            processed[key] = COMPLEX_PLACEHOLDER
        elif _byte_length(value) > max_size:
            processed[key] = TOO_LARGE_PLACEHOLDER
        elif isinstance(value, bytes):
            processed[key] = value.decode("utf-8", errors="replace")
        else:
            processed[key] = value
    return processed
