from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from saas_starter.core.auth import NotAuthenticated
from saas_starter.core.session import clear_session_cookie

log = logging.getLogger("saas_starter.errors")


class FormValidationError(Exception):
    """A form action's input did not match its schema."""

    def __init__(self, fields: Dict[str, List[str]], values: Dict[str, Any]) -> None:
        super().__init__("form validation failed")
        self.fields = fields
        self.values = values


def _trace_id(request: Request) -> str:
    """trace_id set by the request logger, an inbound X-Request-ID, or a new one."""
    val = getattr(request.state, "trace_id", None) or request.headers.get("x-request-id")
    if not val:
        val = uuid.uuid4().hex
        request.state.trace_id = val
    return str(val)


def _payload(
    *,
    message: str,
    typ: str,
    status: int,
    trace_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"type": typ, "message": message, "status": status, "trace_id": trace_id}
    if details is not None:
        error["details"] = details
    return {"ok": False, "error": error}


def _error_response(
    request: Request,
    *,
    status: int,
    typ: str,
    message: str,
    details: Optional[Any] = None,
    extra: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    trace_id = _trace_id(request)
    body = _payload(message=message, typ=typ, status=status, trace_id=trace_id, details=details)
    if extra:
        body.update(extra)
    return JSONResponse(
        status_code=status,
        content=body,
        headers={**(headers or {}), "X-Request-ID": trace_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    JSON error bodies of one shape (`{ok: false, error: {...}}`) with
    X-Request-ID on each. NotAuthenticated is the exception: it becomes a
    redirect to the sign-in page.
    """

    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        status = int(exc.status_code)
        log.log(
            logging.ERROR if status >= 500 else logging.WARNING,
            "%s %s -> %s | trace_id=%s | detail=%r",
            request.method,
            request.url.path,
            status,
            _trace_id(request),
            exc.detail,
        )
        return _error_response(
            request,
            status=status,
            typ="http_error",
            message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
            details=exc.detail if isinstance(exc.detail, dict) else None,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
        log.warning("%s %s -> 422 | trace_id=%s | errors=%s", request.method, request.url.path, _trace_id(request), errors)
        return _error_response(request, status=422, typ="validation_error", message="Validation failed.", details=errors)

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError):
        log.info("form rejected %s %s | fields=%s", request.method, request.url.path, sorted(exc.fields))
        return _error_response(
            request,
            status=422,
            typ="validation_error",
            message="Validation failed.",
            details=exc.fields,
            extra={"values": exc.values},
        )

    @app.exception_handler(NotAuthenticated)
    async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
        response = RedirectResponse("/sign-in", status_code=303)
        clear_session_cookie(response, secure=request.app.state.settings.session_cookie_secure)
        response.headers["X-Request-ID"] = _trace_id(request)
        return response

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        # traceback stays in the server log
        log.exception("unhandled %s %s -> 500 | trace_id=%s", request.method, request.url.path, _trace_id(request))
        return _error_response(request, status=500, typ="internal_error", message="Internal server error.")
