# saas_starter/core/session.py
"""
Stateless session credentials.

The credential lives only in the client's `session` cookie as an HS256 JWT:

    {"user": {"id": <int>}, "expires": "<ISO-8601 UTC>"}

`verify` answers "is this a credential we signed?" and never raises. Expiry
is a separate question (`SessionCredential.is_expired`), so an expired blob
still verifies; `current` combines both for callers that only want a live
session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from starlette.responses import Response

log = logging.getLogger("saas_starter.session")

SESSION_COOKIE = "session"
SESSION_TTL = timedelta(hours=24)
ALGORITHM = "HS256"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionCredential:
    user_id: int
    expires_at: datetime  # tz-aware UTC

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or _now())


class SessionManager:
    def __init__(self, secret: str, ttl: timedelta = SESSION_TTL) -> None:
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, user: Any) -> tuple[str, SessionCredential]:
        credential = SessionCredential(user_id=int(user.id), expires_at=_now() + self.ttl)
        return self.sign(credential), credential

    def sign(self, credential: SessionCredential) -> str:
        claims = {
            "user": {"id": credential.user_id},
            "expires": credential.expires_at.astimezone(timezone.utc).isoformat(),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, blob: Optional[str]) -> Optional[SessionCredential]:
        if not blob:
            return None
        try:
            payload = jwt.decode(blob, self._secret, algorithms=[ALGORITHM])
        except JWTError:
            return None

        user = payload.get("user")
        user_id = user.get("id") if isinstance(user, dict) else None
        # bool is an int subclass; "1" and 1.0 are not ids either
        if type(user_id) is not int:
            return None

        expires = payload.get("expires")
        if not isinstance(expires, str):
            return None
        try:
            expires_at = datetime.fromisoformat(expires)
        except ValueError:
            return None
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return SessionCredential(user_id=user_id, expires_at=expires_at)

    def current(self, blob: Optional[str]) -> Optional[SessionCredential]:
        credential = self.verify(blob)
        if credential is None or credential.is_expired():
            return None
        return credential

    def refresh(self, credential: SessionCredential) -> tuple[str, SessionCredential]:
        renewed = SessionCredential(user_id=credential.user_id, expires_at=_now() + self.ttl)
        return self.sign(renewed), renewed


def set_session_cookie(
    response: Response,
    blob: str,
    credential: SessionCredential,
    *,
    secure: bool = True,
) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        blob,
        expires=credential.expires_at,
        httponly=True,
        secure=secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, *, secure: bool = True) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/", httponly=True, secure=secure, samesite="lax")
