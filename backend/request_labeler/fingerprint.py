"""Request fingerprinting.

A fingerprint is the MD5 of ``entry_point + php_serialize(query) + path``.
The query mapping goes through the legacy PHP ``serialize()`` encoding so
that fingerprints stay identical to the ones already stored by older hosts
and already used as profiler transaction names.
"""
from __future__ import annotations

import hashlib
import math
import re
from collections.abc import Mapping
from typing import Any

_INT_KEY_RE = re.compile(r"^(0|-?[1-9][0-9]*)$")
_PHP_INT_MAX = 2**63 - 1
_PHP_INT_MIN = -(2**63)


def _serialize_str(value: str) -> str:
    return f's:{len(value.encode("utf-8"))}:"{value}";'


def _serialize_float(value: float) -> str:
    if math.isnan(value):
        return "d:NAN;"
    if math.isinf(value):
        return "d:INF;" if value > 0 else "d:-INF;"
    if value.is_integer() and abs(value) < 1e15:
        return f"d:{int(value)};"
    return f"d:{value!r};"


def _serialize_key(key: Any) -> str:
    # PHP arrays coerce decimal-integer string keys to integer keys.
    if isinstance(key, bool):
        return f"i:{int(key)};"
    if isinstance(key, int):
        return f"i:{key};"
    if isinstance(key, str):
        if _INT_KEY_RE.match(key) and _PHP_INT_MIN <= int(key) <= _PHP_INT_MAX:
            return f"i:{int(key)};"
        return _serialize_str(key)
    raise TypeError(f"unsupported array key type: {type(key).__name__}")


def php_serialize(value: Any) -> str:
    """Render ``value`` in PHP ``serialize()`` format.

    Order-sensitive for mappings and type-preserving for scalars, so
    ``{"a": "1"}`` and ``{"a": 1}`` serialize differently.
    """
    if value is None:
        return "N;"
    if isinstance(value, bool):
        return f"b:{int(value)};"
    if isinstance(value, int):
        return f"i:{value};"
    if isinstance(value, float):
        return _serialize_float(value)
    if isinstance(value, str):
        return _serialize_str(value)
    if isinstance(value, Mapping):
        items = list(value.items())
    elif isinstance(value, (list, tuple)):
        items = list(enumerate(value))
    else:
        raise TypeError(f"cannot serialize {type(value).__name__}")

    body = "".join(_serialize_key(k) + php_serialize(v) for k, v in items)
    return f"a:{len(items)}:{{{body}}}"


def fingerprint(entry_point: str, query_params: Mapping[str, Any], request_path: str) -> str:
    """Return the 32-char hex digest identifying a logical request."""
    payload = entry_point + php_serialize(dict(query_params)) + request_path
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()
