# saas_starter/middleware/session_refresh.py
from __future__ import annotations

from typing import Iterable, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from saas_starter.core.session import SESSION_COOKIE, clear_session_cookie, set_session_cookie

PROTECTED_PREFIXES: Tuple[str, ...] = ("/dashboard",)


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """
    Sliding sessions:
      - protected pages without a live session -> 303 /sign-in
      - GET with a live session -> cookie re-issued with a fresh expiry
      - a cookie that fails verification, has expired or names a deleted
        user is cleared
    Handlers that set their own session cookie (sign-in, reconciliation) win.
    """

    def __init__(self, app, protected_prefixes: Iterable[str] = PROTECTED_PREFIXES):
        super().__init__(app)
        self.protected_prefixes = tuple(protected_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        sessions = request.app.state.session_manager
        secure = request.app.state.settings.session_cookie_secure

        blob = request.cookies.get(SESSION_COOKIE)
        credential = sessions.current(blob)
        protected = any(request.url.path.startswith(p) for p in self.protected_prefixes)

        if protected and credential is None:
            response = RedirectResponse("/sign-in", status_code=303)
            if blob:
                clear_session_cookie(response, secure=secure)
            return response

        response = await call_next(request)

        if _sets_session_cookie(response):
            return response

        stale = getattr(request.state, "stale_session", False)
        if credential is not None and not stale and request.method == "GET":
            renewed_blob, renewed = sessions.refresh(credential)
            set_session_cookie(response, renewed_blob, renewed, secure=secure)
        elif blob and (credential is None or stale):
            clear_session_cookie(response, secure=secure)

        return response


def _sets_session_cookie(response: Response) -> bool:
    prefix = f"{SESSION_COOKIE}=".encode("latin-1")
    return any(
        name == b"set-cookie" and value.startswith(prefix)
        for name, value in response.raw_headers
    )
