"""In-memory stand-in for StripeGateway: same methods, canned answers, no network."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from saas_starter.services.stripe_gateway import (
    CheckoutSessionInfo,
    PaymentProviderError,
    PlanInfo,
    PriceInfo,
    SubscriptionInfo,
    WebhookEvent,
    subscription_from_stripe,
)

VALID_SIGNATURE = "valid"


def make_checkout(
    session_id: str = "cs_test_1",
    *,
    user_id: Optional[Any] = 1,
    customer_id: Optional[str] = "cus_123",
    subscription_id: str = "sub_123",
    status: str = "active",
    with_subscription: bool = True,
    with_plan: bool = True,
) -> CheckoutSessionInfo:
    plan = PlanInfo(price_id="price_base", product_id="prod_base", product_name="Base") if with_plan else None
    subscription = (
        SubscriptionInfo(id=subscription_id, status=status, customer_id=customer_id, plan=plan)
        if with_subscription
        else None
    )
    return CheckoutSessionInfo(
        id=session_id,
        customer_id=customer_id,
        client_reference_id=None if user_id is None else str(user_id),
        subscription=subscription,
    )


def subscription_event(
    event_type: str,
    *,
    customer: str = "cus_123",
    subscription: str = "sub_123",
    status: str = "active",
    product: Optional[Dict[str, Any]] = None,
) -> bytes:
    product = product or {"id": "prod_plus", "name": "Plus"}
    return json.dumps({
        "type": event_type,
        "data": {"object": {
            "id": subscription,
            "object": "subscription",
            "customer": customer,
            "status": status,
            "items": {"data": [{"price": {"id": "price_plus", "product": product}}]},
        }},
    }).encode()


class FakeStripeGateway:
    def __init__(self) -> None:
        self.checkout_sessions: Dict[str, CheckoutSessionInfo] = {}
        self.created_sessions: List[Dict[str, Any]] = []
        self.portal_sessions: List[Dict[str, Any]] = []
        self.prices: List[PriceInfo] = []
        self.retrieved: List[str] = []

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        self.retrieved.append(session_id)
        try:
            return self.checkout_sessions[session_id]
        except KeyError:
            raise PaymentProviderError(f"No such checkout session: {session_id}") from None

    def create_checkout_session(self, **kwargs: Any) -> str:
        self.created_sessions.append(kwargs)
        return f"https://checkout.stripe.test/c/{len(self.created_sessions):04d}"

    def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        self.portal_sessions.append({"customer_id": customer_id, "return_url": return_url})
        return f"https://billing.stripe.test/p/{customer_id}"

    def list_prices(self) -> List[PriceInfo]:
        return list(self.prices)

    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        if signature != VALID_SIGNATURE:
            raise ValueError("Invalid webhook signature.")
        data = json.loads(payload)
        event_type = data.get("type", "")
        obj = data.get("data", {}).get("object")
        subscription = subscription_from_stripe(obj) if event_type.startswith("customer.subscription.") else None
        return WebhookEvent(type=event_type, subscription=subscription)
