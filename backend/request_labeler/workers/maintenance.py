"""Maintenance triggers — archive now, strip dependency noise."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from request_labeler.archiver import archive, archive_path_for
from request_labeler.celery_app import celery
from request_labeler.errors import FileAccessDenied, StoreError
from request_labeler.log_filter import remove_dependency_noise
from request_labeler.store import get_store

logger = logging.getLogger(__name__)


@celery.task(name="request_labeler.workers.maintenance.run_archive")
def run_archive(target_path: str | None = None) -> int:
    """Drain the request table into today's archive file."""
    target = target_path or str(archive_path_for(datetime.now(timezone.utc).date()))
    try:
        return archive(get_store(), target)
    except (StoreError, FileAccessDenied) as exc:
        logger.error("Archive run into %s failed: %s", target, exc)
        raise


@celery.task(name="request_labeler.workers.maintenance.run_dependency_noise_filter")
def run_dependency_noise_filter(file_path: str) -> int:
    try:
        return remove_dependency_noise(get_store(), file_path)
    except StoreError as exc:
        logger.warning("Dependency noise filter skipped for %s: %s", file_path, exc)
        return 0
