"""FastAPI / Starlette integration — labels each request before routing it."""
from __future__ import annotations

import inspect
import json
import logging
from typing import Any
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.routing import Match

from request_labeler.labeler import Labeler, get_labeler
from request_labeler.observability import setup_opentelemetry
from request_labeler.schemas.request import RequestContext

logger = logging.getLogger(__name__)

_BODYLESS_METHODS = {"GET", "HEAD", "OPTIONS", "DELETE"}


def _match_route(request: Request) -> tuple[str, Any]:
    """Route template and endpoint the router will pick, if any."""
    router = getattr(request.app, "router", None)
    for route in getattr(router, "routes", []):
        match, _child_scope = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path), getattr(route, "endpoint", None)
    return request.url.path, None


def _source_file(endpoint: Any) -> str:
    if endpoint is None:
        return ""
    try:
        return inspect.getsourcefile(endpoint) or ""
    except TypeError:
        return ""


async def _read_body(request: Request) -> dict[str, Any]:
    if request.method in _BODYLESS_METHODS:
        return {}
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/x-www-form-urlencoded":
        raw = await request.body()
        return dict(parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True))
    if content_type == "application/json":
        raw = await request.body()
        try:
            payload = json.loads(raw or b"null")
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
    return {}


async def build_request_context(request: Request) -> RequestContext:
    route_path, endpoint = _match_route(request)
    request_path = request.url.path
    if request.url.query:
        request_path = f"{request_path}?{request.url.query}"
    return RequestContext(
        entry_point=route_path,
        request_path=request_path,
        script_file_path=_source_file(endpoint),
        # repeated keys keep their first position and last value
        query_params=dict(request.query_params.multi_items()),
        body=await _read_body(request),
    )


class RequestLabelingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, labeler: Labeler | None = None) -> None:
        super().__init__(app)
        self._labeler = labeler

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            context = await build_request_context(request)
            labeler = self._labeler or get_labeler()
            await run_in_threadpool(labeler.label_current_request, context)
        except Exception:
            logger.exception("Request labeling failed for %s", request.url.path)
        return await call_next(request)


def instrument_app(app: FastAPI, labeler: Labeler | None = None) -> FastAPI:
    """Attach the labeling middleware and tracing to a host application."""
    app.add_middleware(RequestLabelingMiddleware, labeler=labeler)
    setup_opentelemetry(app)
    return app
