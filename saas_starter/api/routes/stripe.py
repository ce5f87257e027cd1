# saas_starter/api/routes/stripe.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from saas_starter.core.auth import (
    get_current_user,
    get_db,
    get_payment_gateway,
    get_session_manager,
    get_settings,
    require_user,
)
from saas_starter.core.config import Settings
from saas_starter.core.session import SessionManager, set_session_cookie
from saas_starter.crud.team import get_membership_for_user, get_team
from saas_starter.models.user import User
from saas_starter.schemas.team import PriceOut
from saas_starter.services import billing
from saas_starter.services.stripe_gateway import PaymentProviderError, StripeGateway

log = logging.getLogger("saas_starter.billing")

router = APIRouter(prefix="/stripe", tags=["billing"])

SUBSCRIPTION_EVENTS = {"customer.subscription.updated", "customer.subscription.deleted"}


@router.get("/checkout")
def checkout_callback(
    session_id: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """Return from hosted checkout: reconcile the team's billing, then sign the buyer in."""
    if not session_id:
        return RedirectResponse("/pricing", status_code=303)

    try:
        user = billing.reconcile_checkout(db, gateway, session_id)
    except billing.ReconciliationError as e:
        log.warning("checkout callback %s rejected: %s", session_id, e)
        return RedirectResponse("/error", status_code=303)
    except Exception:
        # provider unreachable, unexpected shapes, store failures: nothing leaks to the browser
        log.exception("checkout callback %s failed", session_id)
        return RedirectResponse("/error", status_code=303)

    response = RedirectResponse("/dashboard", status_code=303)
    blob, credential = sessions.issue(user)
    set_session_cookie(response, blob, credential, secure=settings.session_cookie_secure)
    return response


@router.post("/checkout-session")
def start_checkout(
    price_id: str = Form(..., alias="priceId", min_length=1),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    team = None
    if user is not None:
        membership = get_membership_for_user(db, user.id)
        team = get_team(db, membership.team_id) if membership else None

    try:
        target = billing.create_checkout_session(
            gateway,
            base_url=settings.base_url,
            team=team,
            user=user,
            price_id=price_id,
        )
    except PaymentProviderError:
        log.exception("checkout for price %s could not be started", price_id)
        return RedirectResponse("/error", status_code=303)
    return RedirectResponse(target, status_code=303)


@router.post("/portal")
def customer_portal(
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    membership = get_membership_for_user(db, user.id)
    team = get_team(db, membership.team_id) if membership else None
    if team is None:
        return RedirectResponse("/pricing", status_code=303)
    target = billing.create_customer_portal_session(gateway, base_url=settings.base_url, team=team)
    return RedirectResponse(target, status_code=303)


@router.get("/prices", response_model=List[PriceOut])
def prices(gateway: StripeGateway = Depends(get_payment_gateway)):
    try:
        return [PriceOut.model_validate(p) for p in billing.list_prices(gateway)]
    except PaymentProviderError:
        log.exception("listing prices failed")
        raise HTTPException(status_code=502, detail="Pricing is temporarily unavailable.")


@router.post("/webhook")
async def webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature", "")

    try:
        event = gateway.construct_event(payload, signature)
    except ValueError:
        log.warning("webhook rejected: bad payload or signature")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed.")

    if event.type in SUBSCRIPTION_EVENTS and event.subscription is not None:
        billing.handle_subscription_change(db, event.subscription)
    else:
        log.info("webhook event %s ignored", event.type)

    return {"received": True}
