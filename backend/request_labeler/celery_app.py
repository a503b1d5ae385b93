"""Celery application for the out-of-band maintenance jobs.

Beat owns *when* archival runs; the tasks only archive "now".
"""
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

from request_labeler.config import settings
from request_labeler.observability import setup_opentelemetry

celery = Celery("request_labeler", broker=settings.CELERY_BROKER_URL)

setup_opentelemetry(worker=True)

# ── Serialisation ──
celery.conf.accept_content = ["json"]
celery.conf.task_serializer = "json"
celery.conf.result_serializer = "json"
celery.conf.timezone = "UTC"
celery.conf.enable_utc = True
celery.conf.task_ignore_result = True

# ── Reliability ──
# Archival is at-most-once.
celery.conf.task_acks_late = False
celery.conf.worker_prefetch_multiplier = 1

default_exchange = Exchange("labeler", type="direct")
celery.conf.task_queues = (
    Queue("maintenance", default_exchange, routing_key="maintenance"),
)
celery.conf.task_default_queue = "maintenance"
celery.conf.task_default_exchange = "labeler"
celery.conf.task_default_routing_key = "maintenance"


def parse_cron(expr: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expr.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# ── Beat Schedule ──
celery.conf.beat_schedule = {
    "archive-requests-daily": {
        "task": "request_labeler.workers.maintenance.run_archive",
        "schedule": parse_cron(settings.ARCHIVE_CRON),
    },
}
if settings.ARCHIVE_NOISE_FILTER_PATH:
    celery.conf.beat_schedule["filter-dependency-noise"] = {
        "task": "request_labeler.workers.maintenance.run_dependency_noise_filter",
        "schedule": parse_cron(settings.ARCHIVE_CRON),
        "args": [settings.ARCHIVE_NOISE_FILTER_PATH],
    }

celery.autodiscover_tasks(["request_labeler.workers"], related_name="maintenance", force=True)
