"""JSON structured logging for the labeler, its workers and its CLI."""
from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from request_labeler.config import settings

SERVICE_NAME = "request-labeler"


def setup_logging(level: str | None = None) -> None:
    """Send every record to stdout as one JSON object.

    ``level`` overrides ``APP_LOG_LEVEL`` (the CLI passes ``--log-level``).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
            },
            static_fields={"service": SERVICE_NAME, "env": settings.APP_ENV},
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel((level or settings.APP_LOG_LEVEL).upper())

    # redis-py logs every reconnect attempt at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.INFO)
