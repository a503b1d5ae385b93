"""Profiler integrations that receive the request fingerprint as a label."""
from __future__ import annotations

import logging
from typing import Protocol

from request_labeler.config import settings

logger = logging.getLogger(__name__)

FINGERPRINT_ATTRIBUTE = "labeler.fingerprint"


class TransactionNamer(Protocol):
    def set_transaction_name(self, name: str) -> None: ...


class OpenTelemetryTransactionNamer:
    """Renames the active span so traces group by request fingerprint."""

    def __init__(self) -> None:
        from opentelemetry import trace

        self._trace = trace

    def set_transaction_name(self, name: str) -> None:
        span = self._trace.get_current_span()
        if not span.is_recording():
            return
        span.update_name(name)
        span.set_attribute(FINGERPRINT_ATTRIBUTE, name)


def build_profiler(kind: str | None = None) -> TransactionNamer | None:
    """Profiler selected by ``LABELER_PROFILER``; None disables labeling calls."""
    kind = (kind or settings.LABELER_PROFILER).strip().lower()
    if kind in {"", "none"}:
        return None
    if kind == "otel":
        try:
            return OpenTelemetryTransactionNamer()
        except ImportError as exc:
            logger.info("OpenTelemetry profiler disabled (packages missing): %s", exc)
            return None
    raise ValueError(f"Unknown profiler integration: {kind!r}")
