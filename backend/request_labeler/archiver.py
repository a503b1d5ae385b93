"""Drain the request-log table into an append-only flat log.

Delivery is at-most-once: if the process dies between reading the table and
finishing the append, the drained records are gone. Overlapping runs can
archive the same record twice; the exclusive append lock keeps lines whole.
"""
from __future__ import annotations

import fcntl
import json
import logging
from datetime import date
from pathlib import Path

from request_labeler.config import settings
from request_labeler.errors import FileAccessDenied
from request_labeler.metrics import (
    ARCHIVE_RUNS_TOTAL,
    ARCHIVE_SIBLING_ERRORS_TOTAL,
    ARCHIVED_LINES_TOTAL,
)
from request_labeler.store import SharedStore

logger = logging.getLogger(__name__)

ARCHIVE_FILE_PREFIX = "labeler_"


def archive_path_for(day: date, directory: str | Path | None = None) -> Path:
    """Per-day rotation target, e.g. ``/tmp/labeler_2024-05-01.log``."""
    base = Path(directory or settings.ARCHIVE_DIR)
    return base / f"{ARCHIVE_FILE_PREFIX}{day.isoformat()}.log"


def structured_sibling_path(target: Path) -> Path:
    return target.with_name(target.name + ".jsonl")


def render_line(fingerprint: str, details: str) -> str:
    return f"Hash: {fingerprint}, Details: {details}"


def _render_structured(fingerprint: str, details: str) -> str:
    try:
        decoded = json.loads(details)
    except ValueError:
        decoded = details
    return json.dumps({"hash": fingerprint, "details": decoded}, ensure_ascii=False)


def _append_locked(path: Path, content: str) -> None:
    with open(path, "a", encoding="utf-8") as fh:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            fh.write(content)
            fh.flush()
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def archive(
    store: SharedStore,
    target_path: str | Path,
    *,
    table: str | None = None,
    structured_sibling: bool | None = None,
) -> int:
    """Append every stored request to ``target_path`` and clear the table.

    Returns the number of archived lines. When the target cannot be written
    the table is left intact for the next run and FileAccessDenied is raised.
    A failed structured sibling is only logged.
    """
    table = table or settings.LABELER_REQUEST_TABLE
    target = Path(target_path)
    if structured_sibling is None:
        structured_sibling = settings.ARCHIVE_STRUCTURED_SIBLING

    entries = store.read_all(table)
    if not entries:
        store.clear(table)
        ARCHIVE_RUNS_TOTAL.labels(status="empty").inc()
        logger.info("Nothing to archive from %s", table)
        return 0

    content = "".join(render_line(h, d) + "\n" for h, d in entries.items())
    try:
        _append_locked(target, content)
    except OSError as exc:
        ARCHIVE_RUNS_TOTAL.labels(status="failed").inc()
        raise FileAccessDenied(str(target), exc.strerror or str(exc)) from exc

    # the flat log is the record of truth; past this point the table is drained
    if structured_sibling:
        sibling = structured_sibling_path(target)
        try:
            _append_locked(
                sibling,
                "".join(_render_structured(h, d) + "\n" for h, d in entries.items()),
            )
        except OSError as exc:
            ARCHIVE_SIBLING_ERRORS_TOTAL.inc()
            logger.warning("Structured archive %s not written: %s", sibling, exc)

    store.clear(table)
    ARCHIVE_RUNS_TOTAL.labels(status="ok").inc()
    ARCHIVED_LINES_TOTAL.inc(len(entries))
    logger.info("Archived %s requests to %s", len(entries), target)
    return len(entries)
