"""Request and dependency bookkeeping in the shared store."""
from __future__ import annotations

import logging
import os
import sys

from request_labeler.config import settings
from request_labeler.metrics import DEPENDENCY_SNAPSHOTS_TOTAL
from request_labeler.sanitize import sanitize
from request_labeler.schemas.request import DependencySnapshot, RequestContext, RequestRecord
from request_labeler.store import SharedStore

logger = logging.getLogger(__name__)


def build_record(context: RequestContext, *, max_size: int | None = None) -> RequestRecord:
    if max_size is None:
        max_size = settings.LABELER_MAX_FIELD_BYTES
    return RequestRecord(
        entry_point=context.entry_point,
        query_params=context.query_params,
        sanitized_body=sanitize(context.body, max_size),
        request_path=context.request_path,
        script_file_path=context.script_file_path,
    )


def record_if_absent(
    store: SharedStore,
    fingerprint: str,
    context: RequestContext,
    *,
    table: str | None = None,
    max_size: int | None = None,
) -> bool:
    """Store the request under ``fingerprint`` unless it is already there.

    The HEXISTS check keeps repeat requests from paying for sanitizing and
    serializing. Two callers can both see the field missing; HSETNX makes
    the slower one a no-op, so the record is written exactly once.
    """
    table = table or settings.LABELER_REQUEST_TABLE
    if store.exists(table, fingerprint):
        return False

    record = build_record(context, max_size=max_size)
    created = store.write_field_if_absent(table, fingerprint, record.to_json())
    if created:
        logger.debug("Recorded request %s (%s)", fingerprint, context.entry_point)
    return created


def record_dependency_snapshot(
    store: SharedStore,
    files: list[str],
    *,
    table: str | None = None,
) -> str:
    """Write the file list under the digest of its own encoding; returns the digest."""
    snapshot = DependencySnapshot.from_files(files)
    store.write_field(
        table or settings.LABELER_DEPENDENCY_TABLE,
        snapshot.digest,
        snapshot.encoded_files(),
    )
    DEPENDENCY_SNAPSHOTS_TOTAL.inc()
    return snapshot.digest


def loaded_module_files() -> list[str]:
    """Source files of every imported module, in import order."""
    files: list[str] = []
    seen: set[str] = set()
    for module in list(sys.modules.values()):
        path = getattr(module, "__file__", None)
        if not path or path in seen:
            continue
        seen.add(path)
        files.append(os.path.abspath(path))
    return files
