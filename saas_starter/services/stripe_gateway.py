# saas_starter/services/stripe_gateway.py
"""
Thin wrapper around the stripe SDK.

  - The API key is passed on every call; nothing is written to the global
    `stripe.api_key`.
  - Provider objects are normalized into small dataclasses right here, so
    the rest of the app never touches StripeObject shapes.
  - Tests swap this class for a fake with the same methods.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import stripe

log = logging.getLogger("saas_starter.billing")

TRIAL_PERIOD_DAYS = 14


class PaymentProviderError(RuntimeError):
    """The payment provider failed or answered with an unexpected shape."""


@dataclass(frozen=True)
class PlanInfo:
    price_id: str
    product_id: str
    product_name: Optional[str]


@dataclass(frozen=True)
class SubscriptionInfo:
    id: str
    status: str
    customer_id: Optional[str]
    plan: Optional[PlanInfo]


@dataclass(frozen=True)
class CheckoutSessionInfo:
    id: str
    customer_id: Optional[str]
    client_reference_id: Optional[str]
    subscription: Optional[SubscriptionInfo]


@dataclass(frozen=True)
class PriceInfo:
    id: str
    product_id: str
    product_name: Optional[str]
    unit_amount: Optional[int]
    currency: str
    interval: Optional[str]
    trial_period_days: Optional[int]


@dataclass(frozen=True)
class WebhookEvent:
    type: str
    subscription: Optional[SubscriptionInfo]


# -----------------------------
# Normalization helpers
# -----------------------------
def _field(obj: Any, name: str) -> Any:
    """obj[name] for StripeObjects and dicts; None for ids, None and missing keys."""
    if obj is None or isinstance(obj, str):
        return None
    try:
        return obj[name]
    except (KeyError, TypeError, IndexError):
        return None


def _id_of(obj: Any) -> Optional[str]:
    # expandable references arrive either as "xx_123" or as the expanded object
    if isinstance(obj, str):
        return obj or None
    value = _field(obj, "id")
    return value if isinstance(value, str) and value else None


def plan_from_stripe(subscription: Any) -> Optional[PlanInfo]:
    items = _field(_field(subscription, "items"), "data") or []
    if not items:
        return None
    price = _field(items[0], "price")
    price_id = _id_of(price)
    product = _field(price, "product")
    product_id = _id_of(product)
    if not price_id or not product_id:
        return None
    return PlanInfo(price_id=price_id, product_id=product_id, product_name=_field(product, "name"))


def subscription_from_stripe(subscription: Any) -> Optional[SubscriptionInfo]:
    sub_id = _id_of(subscription)
    if sub_id is None or isinstance(subscription, str):
        return None
    return SubscriptionInfo(
        id=sub_id,
        status=str(_field(subscription, "status") or ""),
        customer_id=_id_of(_field(subscription, "customer")),
        plan=plan_from_stripe(subscription),
    )


def checkout_session_from_stripe(session: Any, subscription: Any = None) -> CheckoutSessionInfo:
    """`subscription` overrides an unexpanded subscription id on the session."""
    session_id = _id_of(session)
    if session_id is None:
        raise PaymentProviderError("Checkout session without an id.")

    customer = _field(session, "customer")
    ref = _field(session, "client_reference_id")
    return CheckoutSessionInfo(
        id=session_id,
        # only an expanded customer object counts; a bare id means expansion failed
        customer_id=_id_of(customer) if not isinstance(customer, str) else None,
        client_reference_id=str(ref) if ref is not None else None,
        subscription=subscription_from_stripe(
            subscription if subscription is not None else _field(session, "subscription")
        ),
    )


def price_from_stripe(price: Any) -> Optional[PriceInfo]:
    price_id = _id_of(price)
    product = _field(price, "product")
    product_id = _id_of(product)
    if price_id is None or product_id is None:
        return None
    recurring = _field(price, "recurring")
    return PriceInfo(
        id=price_id,
        product_id=product_id,
        product_name=_field(product, "name"),
        unit_amount=_field(price, "unit_amount"),
        currency=str(_field(price, "currency") or ""),
        interval=_field(recurring, "interval"),
        trial_period_days=_field(recurring, "trial_period_days"),
    )


# -----------------------------
# Gateway
# -----------------------------
class StripeGateway:
    def __init__(self, secret_key: str, webhook_secret: str = "") -> None:
        self._api_key = secret_key
        self._webhook_secret = webhook_secret

    def _require_key(self) -> None:
        if not self._api_key:
            raise PaymentProviderError("STRIPE_SECRET_KEY is not configured.")

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        self._require_key()
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                api_key=self._api_key,
                expand=["customer", "subscription"],
            )
            # re-read the subscription to get the product expanded on its first item
            subscription = None
            subscription_id = _id_of(_field(session, "subscription"))
            if subscription_id:
                subscription = stripe.Subscription.retrieve(
                    subscription_id,
                    api_key=self._api_key,
                    expand=["items.data.price.product"],
                )
        except stripe.StripeError as e:
            raise PaymentProviderError(f"Could not load checkout session {session_id!r}.") from e
        return checkout_session_from_stripe(session, subscription)

    def create_checkout_session(
        self,
        *,
        price_id: str,
        client_reference_id: str,
        success_url: str,
        cancel_url: str,
        customer_id: Optional[str] = None,
    ) -> str:
        """Creates a subscription checkout session and returns its hosted URL."""
        self._require_key()
        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "allow_promotion_codes": True,
            "subscription_data": {"trial_period_days": TRIAL_PERIOD_DAYS},
        }
        if customer_id:
            params["customer"] = customer_id
        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            raise PaymentProviderError("Could not create checkout session.") from e
        url = _field(session, "url")
        if not url:
            raise PaymentProviderError("Checkout session has no URL.")
        return url

    def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        self._require_key()
        try:
            session = stripe.billing_portal.Session.create(
                api_key=self._api_key,
                customer=customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as e:
            raise PaymentProviderError("Could not create billing portal session.") from e
        return _field(session, "url")

    def list_prices(self) -> List[PriceInfo]:
        self._require_key()
        try:
            prices = stripe.Price.list(
                api_key=self._api_key,
                active=True,
                type="recurring",
                expand=["data.product"],
            )
        except stripe.StripeError as e:
            raise PaymentProviderError("Could not list prices.") from e
        out: List[PriceInfo] = []
        for p in _field(prices, "data") or []:
            info = price_from_stripe(p)
            if info is not None:
                out.append(info)
        return out

    def retrieve_subscription(self, subscription_id: str) -> Optional[SubscriptionInfo]:
        self._require_key()
        try:
            sub = stripe.Subscription.retrieve(
                subscription_id,
                api_key=self._api_key,
                expand=["items.data.price.product"],
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(f"Could not load subscription {subscription_id!r}.") from e
        return subscription_from_stripe(sub)

    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verifies the webhook signature. Raises ValueError for a bad payload or
        signature, PaymentProviderError when no webhook secret is configured.
        """
        if not self._webhook_secret:
            raise PaymentProviderError("STRIPE_WEBHOOK_SECRET is not configured.")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError("Invalid webhook signature.") from e

        event_type = str(_field(event, "type") or "")
        obj = _field(_field(event, "data"), "object")
        subscription = None
        if event_type.startswith("customer.subscription."):
            subscription = subscription_from_stripe(obj)
            # webhook payloads carry the product as an id only
            if subscription is not None and subscription.plan is not None and subscription.plan.product_name is None:
                subscription = self.retrieve_subscription(subscription.id) or subscription
        return WebhookEvent(type=event_type, subscription=subscription)
