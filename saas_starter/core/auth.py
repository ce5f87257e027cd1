# saas_starter/core/auth.py
from typing import Iterator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from saas_starter.core.config import Settings
from saas_starter.core.session import SESSION_COOKIE, SessionManager
from saas_starter.crud.user import get_active_user_by_id
from saas_starter.models.user import User
from saas_starter.services.stripe_gateway import StripeGateway


class NotAuthenticated(Exception):
    """No live session; handled by redirecting to the sign-in page."""


def get_db(request: Request) -> Iterator[Session]:
    """Yield a DB session from the app's factory and make sure it's closed afterwards."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_payment_gateway(request: Request) -> StripeGateway:
    return request.app.state.payment_gateway


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[User]:
    """
    The signed-in user, or None. Bad signature, malformed payload, expiry and
    soft-deleted users all read as "anonymous".
    Side-effects: request.state.user_id for the request logger, and
    request.state.stale_session when a live credential names a user who is
    gone (soft-deleted), so the session middleware drops the cookie.
    """
    credential = sessions.current(request.cookies.get(SESSION_COOKIE))
    if credential is None:
        return None

    user = get_active_user_by_id(db, credential.user_id)
    if user is None:
        request.state.stale_session = True
    else:
        request.state.user_id = user.id
    return user


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise NotAuthenticated()
    return user
