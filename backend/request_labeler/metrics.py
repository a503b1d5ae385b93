"""Prometheus metrics for labeling and maintenance observability."""
from __future__ import annotations

from prometheus_client import Counter


LABELED_REQUESTS_TOTAL = Counter(
    "labeler_requests_total",
    "Requests passed through the labeler by outcome",
    ["outcome"],  # recorded | duplicate | store_error | disabled | unfingerprintable
)

STORE_ERRORS_TOTAL = Counter(
    "labeler_store_errors_total",
    "Shared store faults by operation and class",
    ["operation", "error_class"],
)

PROFILER_ERRORS_TOTAL = Counter(
    "labeler_profiler_errors_total",
    "Failures raised by the profiler integration",
)

DEPENDENCY_SNAPSHOTS_TOTAL = Counter(
    "labeler_dependency_snapshots_total",
    "Dependency snapshots written to the shared store",
)

ARCHIVE_RUNS_TOTAL = Counter(
    "labeler_archive_runs_total",
    "Archive runs by status",
    ["status"],  # ok | empty | failed
)

ARCHIVE_SIBLING_ERRORS_TOTAL = Counter(
    "labeler_archive_sibling_errors_total",
    "Structured archive appends that failed after the flat log was written",
)

ARCHIVED_LINES_TOTAL = Counter(
    "labeler_archived_lines_total",
    "Lines appended to the request archive",
)

FILTERED_LINES_TOTAL = Counter(
    "labeler_filtered_lines_total",
    "Noise lines removed from log files",
)
