"""Tracing bootstrap for the span-renaming profiler.

Fingerprints only reach traces when a recording span is active, so hosts that
choose the ``otel`` profiler get an SDK tracer provider here unless they
installed their own. Missing OpenTelemetry packages disable tracing quietly.
"""
from __future__ import annotations

import logging

from request_labeler.config import settings
from request_labeler.logging_config import SERVICE_NAME

logger = logging.getLogger(__name__)


def _install_tracer_provider() -> bool:
    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    except ImportError as exc:
        logger.info("Span labeling has no tracer (packages missing): %s", exc)
        return False

    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        return True
    if type(current).__name__ != "ProxyTracerProvider":
        logger.info("Keeping host tracer provider %s", type(current).__name__)
        return True

    provider = TracerProvider(
        resource=Resource.create({"service.name": SERVICE_NAME, "deployment.environment": settings.APP_ENV})
    )
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    return True


def setup_opentelemetry(app=None, *, worker: bool = False) -> bool:
    """Prepare tracing for fingerprint labels; returns whether spans will record.

    ``app`` gets server spans from the FastAPI instrumentation, and ``worker``
    turns on task spans for the Celery maintenance jobs.
    """
    if settings.LABELER_PROFILER.strip().lower() != "otel":
        return False
    if not _install_tracer_provider():
        return False

    if app is not None:
        try:
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        except ImportError as exc:
            logger.info("Request spans unavailable, fingerprints will not be attached: %s", exc)
        else:
            FastAPIInstrumentor.instrument_app(app)

    if worker:
        try:
            from opentelemetry.instrumentation.celery import CeleryInstrumentor
        except ImportError as exc:
            logger.info("Maintenance task spans unavailable: %s", exc)
        else:
            CeleryInstrumentor().instrument()
    return True
