# saas_starter/services/billing.py
"""
Billing flows around the payment provider.

`reconcile_checkout` runs when the browser comes back from hosted checkout
with `?session_id=...`. The session id is re-resolved against the provider
(never trusted from the query string), and the only link to a local user is
the `client_reference_id` this app set when it created the checkout session.
Every step checks its precondition; the team row is written only after all of
them pass.
"""
from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from saas_starter.crud import team as team_crud
from saas_starter.crud import user as user_crud
from saas_starter.models.team import Team
from saas_starter.models.user import User
from saas_starter.services.stripe_gateway import (
    PriceInfo,
    StripeGateway,
    SubscriptionInfo,
)

log = logging.getLogger("saas_starter.billing")

ACTIVE_STATUSES = {"active", "trialing"}
ENDED_STATUSES = {"canceled", "unpaid"}


class ReconciliationError(RuntimeError):
    """A checkout callback that must not change any local billing state."""


# -----------------------------
# Checkout initiation
# -----------------------------
def create_checkout_session(
    gateway: StripeGateway,
    *,
    base_url: str,
    team: Optional[Team],
    user: Optional[User],
    price_id: str,
) -> str:
    """
    Returns where to send the browser: the provider's hosted checkout, or the
    sign-up page (carrying the price along) for visitors without an account.
    """
    if user is None or team is None:
        return "/sign-up?" + urlencode({"redirect": "checkout", "priceId": price_id})

    return gateway.create_checkout_session(
        price_id=price_id,
        client_reference_id=str(user.id),
        customer_id=team.stripe_customer_id or None,
        success_url=f"{base_url}/api/stripe/checkout?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base_url}/pricing",
    )


def create_customer_portal_session(gateway: StripeGateway, *, base_url: str, team: Team) -> str:
    if not team.stripe_customer_id or not team.stripe_product_id:
        return "/pricing"
    return gateway.create_portal_session(
        customer_id=team.stripe_customer_id,
        return_url=f"{base_url}/dashboard",
    )


def list_prices(gateway: StripeGateway) -> List[PriceInfo]:
    return gateway.list_prices()


# -----------------------------
# Checkout callback reconciliation
# -----------------------------
def _correlation_user_id(raw: Optional[str]) -> int:
    value = (raw or "").strip()
    if not (value.isascii() and value.isdigit()) or int(value) == 0:
        raise ReconciliationError("No user ID in session's client_reference_id.")
    return int(value)


def reconcile_checkout(db: Session, gateway: StripeGateway, session_id: str) -> User:
    """
    Associates the completed checkout's subscription with the buyer's team and
    returns the buyer, for whom the caller re-issues a session.
    Raises ReconciliationError (or PaymentProviderError) without touching the
    team row when any step fails.
    """
    # 1. resolve the opaque id at the provider
    checkout = gateway.retrieve_checkout_session(session_id)
    if not checkout.customer_id:
        raise ReconciliationError("Invalid customer data from payment provider.")
    subscription = checkout.subscription
    if subscription is None:
        raise ReconciliationError("No subscription found for this session.")
    plan = subscription.plan
    if plan is None:
        raise ReconciliationError("No plan found for this subscription.")

    # 2. correlation value set at checkout initiation
    user_id = _correlation_user_id(checkout.client_reference_id)

    # 3. the buyer, if still active
    user = user_crud.get_active_user_by_id(db, user_id)
    if user is None:
        raise ReconciliationError("User not found in database.")

    # 4. billing is per team
    membership = team_crud.get_membership_for_user(db, user.id)
    team = team_crud.get_team(db, membership.team_id) if membership else None
    if team is None:
        raise ReconciliationError("User is not associated with any team.")

    # 5. full overwrite of the billing fields
    try:
        team_crud.update_team_billing(
            db,
            team,
            stripe_customer_id=checkout.customer_id,
            stripe_subscription_id=subscription.id,
            stripe_product_id=plan.product_id,
            plan_name=plan.product_name,
            subscription_status=subscription.status,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("failed to store subscription %s on team %s", subscription.id, team.id)
        raise ReconciliationError("Failed to update subscription info.") from e

    log.info(
        "team %s subscribed: customer=%s subscription=%s status=%s",
        team.id,
        checkout.customer_id,
        subscription.id,
        subscription.status,
    )
    return user


# -----------------------------
# Webhook: subscription lifecycle
# -----------------------------
def handle_subscription_change(db: Session, subscription: SubscriptionInfo) -> Optional[Team]:
    """Applies a provider-side subscription update to the owning team, if any."""
    if not subscription.customer_id:
        log.warning("subscription %s has no customer; ignored", subscription.id)
        return None

    team = team_crud.get_team_by_stripe_customer_id(db, subscription.customer_id)
    if team is None:
        log.warning("no team for customer %s (subscription %s)", subscription.customer_id, subscription.id)
        return None

    status = subscription.status
    if status in ACTIVE_STATUSES:
        plan = subscription.plan
        team_crud.update_team_billing(
            db,
            team,
            stripe_subscription_id=subscription.id,
            stripe_product_id=plan.product_id if plan else None,
            plan_name=plan.product_name if plan else None,
            subscription_status=status,
        )
    elif status in ENDED_STATUSES:
        team_crud.clear_team_subscription(db, team, subscription_status=status)
    else:
        log.info("subscription %s status %r left as is for team %s", subscription.id, status, team.id)
        return team

    db.commit()
    return team
