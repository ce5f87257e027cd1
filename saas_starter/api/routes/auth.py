# saas_starter/api/routes/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from saas_starter.api.forms import action_error, validated_form
from saas_starter.core.auth import get_current_user, get_db, get_payment_gateway, get_session_manager, get_settings
from saas_starter.core.config import Settings
from saas_starter.core.session import SessionManager, clear_session_cookie, set_session_cookie
from saas_starter.models.team import Team
from saas_starter.models.user import User
from saas_starter.schemas.auth import SignInForm, SignUpForm
from saas_starter.services import accounts
from saas_starter.services.activity import ip_from_request
from saas_starter.services.billing import create_checkout_session
from saas_starter.services.stripe_gateway import PaymentProviderError, StripeGateway

log = logging.getLogger("saas_starter.accounts")

router = APIRouter(prefix="/auth", tags=["auth"])


def _signed_in_redirect(
    *,
    user: User,
    team: Optional[Team],
    redirect: Optional[str],
    price_id: Optional[str],
    settings: Settings,
    sessions: SessionManager,
    gateway: StripeGateway,
) -> RedirectResponse:
    target = "/dashboard"
    if redirect == "checkout" and price_id:
        try:
            target = create_checkout_session(
                gateway,
                base_url=settings.base_url,
                team=team,
                user=user,
                price_id=price_id,
            )
        except PaymentProviderError:
            # account rows are already committed; still sign in
            log.exception("checkout for user %s (price %s) could not be started", user.id, price_id)
            target = "/error"

    response = RedirectResponse(target, status_code=303)
    blob, credential = sessions.issue(user)
    set_session_cookie(response, blob, credential, secure=settings.session_cookie_secure)
    return response


@router.post("/sign-in")
def sign_in(
    request: Request,
    payload: SignInForm = validated_form(SignInForm),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    result = accounts.sign_in(
        db,
        email=payload.email,
        password=payload.password,
        ip_address=ip_from_request(request),
    )
    if not result.ok:
        return action_error(result.error, request)

    return _signed_in_redirect(
        user=result.user,
        team=result.team,
        redirect=payload.redirect,
        price_id=payload.price_id,
        settings=settings,
        sessions=sessions,
        gateway=gateway,
    )


@router.post("/sign-up")
def sign_up(
    request: Request,
    payload: SignUpForm = validated_form(SignUpForm),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    result = accounts.sign_up(
        db,
        email=payload.email,
        password=payload.password,
        invite_id=payload.invite_id,
        ip_address=ip_from_request(request),
    )
    if not result.ok:
        return action_error(result.error, request)

    return _signed_in_redirect(
        user=result.user,
        team=result.team,
        redirect=payload.redirect,
        price_id=payload.price_id,
        settings=settings,
        sessions=sessions,
        gateway=gateway,
    )


@router.post("/sign-out")
def sign_out(
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if user is not None:
        accounts.sign_out(db, user, ip_address=ip_from_request(request))
    response = RedirectResponse("/sign-in", status_code=303)
    clear_session_cookie(response, secure=settings.session_cookie_secure)
    return response
