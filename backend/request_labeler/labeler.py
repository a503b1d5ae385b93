"""Per-request orchestration: fingerprint, record once, label the trace.

Instrumentation must never fail the host request, so every fault on this
path ends as a log line and a metric.
"""
from __future__ import annotations

import logging

from request_labeler.config import settings
from request_labeler.errors import StoreError
from request_labeler.fingerprint import fingerprint
from request_labeler.metrics import LABELED_REQUESTS_TOTAL, PROFILER_ERRORS_TOTAL
from request_labeler.profiler import TransactionNamer, build_profiler
from request_labeler.recorder import loaded_module_files, record_dependency_snapshot, record_if_absent
from request_labeler.schemas.request import RequestContext
from request_labeler.store import SharedStore, get_store

logger = logging.getLogger(__name__)

_labeler: Labeler | None = None


class Labeler:
    def __init__(
        self,
        store: SharedStore | None,
        profiler: TransactionNamer | None = None,
        *,
        enabled: bool = True,
        record_dependencies: bool = False,
        request_table: str | None = None,
        dependency_table: str | None = None,
        max_size: int | None = None,
    ) -> None:
        self.store = store
        self.profiler = profiler
        self.enabled = enabled
        self.record_dependencies = record_dependencies
        self.request_table = request_table or settings.LABELER_REQUEST_TABLE
        self.dependency_table = dependency_table or settings.LABELER_DEPENDENCY_TABLE
        self.max_size = settings.LABELER_MAX_FIELD_BYTES if max_size is None else max_size

    def label_current_request(self, context: RequestContext) -> str | None:
        """Record the request on first sighting and hand its fingerprint to the profiler.

        Returns ``None`` when the query holds values that cannot be fingerprinted.
        """
        try:
            label = fingerprint(context.entry_point, context.query_params, context.request_path)
        except TypeError as exc:
            LABELED_REQUESTS_TOTAL.labels(outcome="unfingerprintable").inc()
            logger.warning("Request to %s not labeled: %s", context.entry_point, exc)
            return None
        outcome = "disabled"
        try:
            if self.enabled and self.store is not None:
                outcome = self._record(label, context)
        finally:
            LABELED_REQUESTS_TOTAL.labels(outcome=outcome).inc()
            self._set_transaction_name(label)
        return label

    def _record(self, label: str, context: RequestContext) -> str:
        try:
            created = record_if_absent(
                self.store,
                label,
                context,
                table=self.request_table,
                max_size=self.max_size,
            )
            if created and self.record_dependencies:
                record_dependency_snapshot(
                    self.store, loaded_module_files(), table=self.dependency_table
                )
        except StoreError as exc:
            logger.warning("Request %s not recorded: %s", label, exc)
            return "store_error"
        except Exception:
            logger.exception("Unexpected failure recording request %s", label)
            return "store_error"
        return "recorded" if created else "duplicate"

    def _set_transaction_name(self, label: str) -> None:
        if self.profiler is None:
            return
        try:
            self.profiler.set_transaction_name(label)
        except Exception as exc:
            PROFILER_ERRORS_TOTAL.inc()
            logger.warning("Profiler rejected transaction name %s: %s", label, exc)


def get_labeler() -> Labeler:
    """Process-wide labeler built from settings."""
    global _labeler
    if _labeler is None:
        _labeler = Labeler(
            get_store(),
            build_profiler(),
            enabled=settings.LABELER_ENABLED,
            record_dependencies=settings.LABELER_RECORD_DEPENDENCIES,
        )
    return _labeler
