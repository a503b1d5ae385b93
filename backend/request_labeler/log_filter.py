"""Best-effort removal of dependency noise from diagnostic logs.

Nothing here raises to the caller on file problems: the filter is hygiene,
and a log it cannot touch is simply left as it was.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from request_labeler.config import settings
from request_labeler.errors import FileAccessDenied, MalformedSnapshot
from request_labeler.metrics import FILTERED_LINES_TOTAL
from request_labeler.schemas.request import DependencySnapshot
from request_labeler.store import SharedStore

logger = logging.getLogger(__name__)


def _rewrite_atomically(path: Path, content: str) -> None:
    if not os.access(path, os.W_OK):
        raise FileAccessDenied(str(path), "not writable")
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as fh:
            fh.write(content)
        os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def delete_matching_lines(file_path: str | Path, line_to_delete: str) -> int:
    """Drop every line equal to ``line_to_delete`` once surrounding whitespace is trimmed.

    Remaining lines are joined with ``\\n`` in their original order; bytes that
    are not UTF-8 and other line-break characters are written back untouched.
    Returns how many lines were removed; 0 for missing, empty or unreadable files.
    """
    path = Path(file_path)
    if not path.is_file():
        return 0

    try:
        try:
            with open(path, encoding="utf-8", errors="surrogateescape", newline="") as fh:
                text = fh.read()
        except OSError as exc:
            raise FileAccessDenied(str(path), exc.strerror or str(exc)) from exc
        if not text:
            return 0

        # only "\n" separates lines; "\r", form feeds and U+2028 stay inside them
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        kept = [line for line in lines if line.strip() != line_to_delete]
        removed = len(lines) - len(kept)
        if not removed:
            return 0

        try:
            _rewrite_atomically(path, "\n".join(kept))
        except OSError as exc:
            raise FileAccessDenied(str(path), exc.strerror or str(exc)) from exc
    except FileAccessDenied as exc:
        logger.warning("Skipping log filter: %s", exc)
        return 0

    FILTERED_LINES_TOTAL.inc(removed)
    return removed


def load_snapshots(store: SharedStore, *, table: str | None = None) -> list[DependencySnapshot]:
    """Decodable snapshots ordered by digest; malformed entries are logged and skipped."""
    rows = store.read_all(table or settings.LABELER_DEPENDENCY_TABLE)
    snapshots: list[DependencySnapshot] = []
    for digest in sorted(rows):
        try:
            snapshots.append(_decode_snapshot(digest, rows[digest]))
        except MalformedSnapshot as exc:
            logger.warning("Ignoring dependency snapshot: %s", exc)
    return snapshots


def _decode_snapshot(digest: str, raw: str) -> DependencySnapshot:
    try:
        return DependencySnapshot.decode(digest, raw)
    except ValueError as exc:
        # json.JSONDecodeError and pydantic.ValidationError both land here
        reason = (str(exc).splitlines() or [type(exc).__name__])[0]
        raise MalformedSnapshot(digest, reason) from exc


def remove_dependency_noise(
    store: SharedStore,
    file_path: str | Path,
    *,
    table: str | None = None,
) -> int:
    """Strip the paths of the first snapshot (smallest digest) from ``file_path``."""
    snapshots = load_snapshots(store, table=table)
    if not snapshots:
        return 0

    snapshot = snapshots[0]
    removed = 0
    for dependency in snapshot.files:
        removed += delete_matching_lines(file_path, dependency)
    logger.info(
        "Removed %s dependency lines from %s using snapshot %s",
        removed,
        file_path,
        snapshot.digest,
    )
    return removed
