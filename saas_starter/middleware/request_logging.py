from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from saas_starter.services.activity import ip_from_request

logger = logging.getLogger("saas_starter.request")

QUIET_PREFIXES: Tuple[str, ...] = (
    "/api/healthz",
    "/api/readyz",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
)


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with trace_id, duration and (when a handler
    resolved it) the signed-in user id. X-Request-ID goes on every response,
    quiet paths included.
    """

    def __init__(self, app, quiet_prefixes: Iterable[str] = QUIET_PREFIXES):
        super().__init__(app)
        self.quiet_prefixes = tuple(quiet_prefixes)

    def _is_quiet(self, request: Request) -> bool:
        return request.method == "OPTIONS" or request.url.path.startswith(self.quiet_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.trace_id = trace_id
        quiet = self._is_quiet(request)
        started = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - started) * 1000)

        try:
            response = await call_next(request)
        except Exception:
            if not quiet:
                logger.exception(
                    "%s %s crashed after %sms trace_id=%s",
                    request.method,
                    request.url.path,
                    elapsed_ms(),
                    trace_id,
                )
            raise

        response.headers["X-Request-ID"] = trace_id
        if not quiet:
            logger.log(
                _level_for(response.status_code),
                "%s %s -> %s %sms ip=%s user=%s trace_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms(),
                ip_from_request(request) or "unknown",
                getattr(request.state, "user_id", None) or "-",
                trace_id,
            )
        return response
