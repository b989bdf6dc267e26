from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from ..logging_utils import bind_request_context, clear_context

REQUEST_ID_HEADER = "x-request-id"
PROCESS_TIME_HEADER = "x-process-time-ms"

# Caller-supplied ids are kept only when they are short printable tokens.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Probes and scrapes are logged at DEBUG only.
_QUIET_PATHS = frozenset({"/health", "/metrics"})

REQUEST_COUNT = Counter(
    "incident_rag_http_requests_total",
    "HTTP requests served by the incident search API",
    ["method", "path", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "incident_rag_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, float("inf")),
)

SEARCH_REQUESTS = Counter(
    "incident_rag_search_requests_total",
    "Search requests by search type and outcome",
    ["search_type", "outcome"],
)


def resolve_request_id(header_value: str | None) -> str:
    """Use the caller's ``x-request-id`` when it is well formed, else mint one."""
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return f"req-{uuid.uuid4().hex}"


def _outcome(status_code: int) -> str:
    if status_code < 400:
        return "ok"
    if status_code < 500:
        return "rejected"
    return "failed"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the lifetime of each API call, then log it and
    record request metrics.

    Search endpoints tag ``request.state.search_type`` with the mode they
    ran; those requests are also counted per search type and outcome.
    Requests that fail validation before a mode is known count as
    ``unknown``.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = logging.getLogger("incident_rag.http")

    async def dispatch(self, request: Request, call_next):
        clear_context()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        bind_request_context(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            path_template = self._path_template(request)
            self._record(request, path_template, 500, duration)
            self.logger.exception(
                "HTTP request failed",
                extra={
                    "method": request.method,
                    "path": path_template,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
            raise
        else:
            duration = time.perf_counter() - start
            path_template = self._path_template(request)
            self._record(request, path_template, response.status_code, duration)
            self._log_completed(request, path_template, response, duration)
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[PROCESS_TIME_HEADER] = f"{duration * 1000:.2f}"
            return response
        finally:
            clear_context()

    def _log_completed(self, request: Request, path: str, response: Response, duration: float) -> None:
        level = logging.DEBUG if path in _QUIET_PATHS else logging.INFO
        if response.status_code >= 500:
            level = logging.WARNING
        self.logger.log(
            level,
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            },
        )

    @staticmethod
    def _path_template(request: Request) -> str:
        # The matched route is only known once routing has run.
        return getattr(request.scope.get("route"), "path", request.url.path)

    @staticmethod
    def _record(request: Request, path: str, status_code: int, duration: float) -> None:
        REQUEST_COUNT.labels(method=request.method, path=path, status_code=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=request.method, path=path).observe(duration)
        if path == "/api/search":
            search_type = getattr(request.state, "search_type", "unknown")
            SEARCH_REQUESTS.labels(search_type=search_type, outcome=_outcome(status_code)).inc()
