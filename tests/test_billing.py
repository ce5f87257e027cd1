"""Checkout initiation, checkout-callback reconciliation, portal, prices and webhooks."""

import pytest
from sqlalchemy.exc import OperationalError

from saas_starter.models.team import Team
from saas_starter.services import billing
from saas_starter.services.stripe_gateway import (
    PaymentProviderError,
    PriceInfo,
    checkout_session_from_stripe,
    price_from_stripe,
    subscription_from_stripe,
)
from tests.fakes import VALID_SIGNATURE, make_checkout, subscription_event
from tests.helpers import PASSWORD, create_user_without_team, sign_up, team_of, user_by_email

CALLBACK = "/api/stripe/checkout"


def billing_fields(team):
    return (
        team.stripe_customer_id,
        team.stripe_subscription_id,
        team.stripe_product_id,
        team.plan_name,
        team.subscription_status,
    )


UNTOUCHED = (None, None, None, None, None)


@pytest.fixture
def owner(client, db):
    sign_up(client, "a@x.com")
    return user_by_email(db, "a@x.com")


# --- checkout callback -----------------------------------------------------------

def test_checkout_callback_subscribes_team_and_signs_in(owner, make_client, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)
    browser = make_client()

    r = browser.get(CALLBACK, params={"session_id": "cs_test_1"})
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"
    assert browser.get("/api/user").json()["id"] == owner.id

    team = team_of(db, owner.id)
    assert billing_fields(team) == ("cus_123", "sub_123", "prod_base", "Base", "active")
    assert gateway.retrieved == ["cs_test_1"]


def test_checkout_callback_without_session_id(client, gateway):
    r = client.get(CALLBACK)
    assert r.status_code == 303
    assert r.headers["location"] == "/pricing"
    assert gateway.retrieved == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"user_id": None},
        {"user_id": "abc"},
        {"user_id": 0},
        {"user_id": "\u00b2"},
        {"user_id": 999},
        {"customer_id": None},
        {"with_subscription": False},
        {"with_plan": False},
    ],
    ids=["no-reference", "non-numeric-reference", "zero-reference", "superscript-reference", "unknown-user",
         "no-customer", "no-subscription", "no-plan"],
)
def test_rejected_checkout_leaves_team_untouched(owner, make_client, gateway, db, overrides):
    params = {"user_id": owner.id, **overrides}
    gateway.checkout_sessions["cs_test_1"] = make_checkout(**params)
    browser = make_client()

    r = browser.get(CALLBACK, params={"session_id": "cs_test_1"})
    assert r.status_code == 303
    assert r.headers["location"] == "/error"
    assert "set-cookie" not in r.headers
    assert billing_fields(team_of(db, owner.id)) == UNTOUCHED


def test_checkout_for_user_without_team(make_client, gateway, db):
    user = create_user_without_team(db, "solo@x.com")
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=user.id)

    r = make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    assert r.headers["location"] == "/error"
    db.expire_all()
    assert db.query(Team).filter(Team.stripe_customer_id.isnot(None)).count() == 0


def test_checkout_for_deleted_user(client, make_client, gateway, db, owner):
    team_id = team_of(db, owner.id).id
    client.post("/api/account/delete", data={"password": PASSWORD})
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)

    r = make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    assert r.headers["location"] == "/error"
    db.expire_all()
    assert billing_fields(db.get(Team, team_id)) == UNTOUCHED


def test_checkout_with_unknown_session(owner, make_client, db):
    r = make_client().get(CALLBACK, params={"session_id": "cs_forged"})
    assert r.status_code == 303
    assert r.headers["location"] == "/error"
    assert billing_fields(team_of(db, owner.id)) == UNTOUCHED


def test_checkout_callback_is_idempotent(owner, make_client, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)

    first = make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    second = make_client().get(CALLBACK, params={"session_id": "cs_test_1"})

    assert first.headers["location"] == second.headers["location"] == "/dashboard"
    assert billing_fields(team_of(db, owner.id)) == ("cus_123", "sub_123", "prod_base", "Base", "active")


def test_checkout_overwrites_previous_billing(owner, make_client, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)
    gateway.checkout_sessions["cs_test_2"] = make_checkout(
        "cs_test_2", user_id=owner.id, subscription_id="sub_456", status="trialing"
    )
    make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    make_client().get(CALLBACK, params={"session_id": "cs_test_2"})

    assert billing_fields(team_of(db, owner.id)) == ("cus_123", "sub_456", "prod_base", "Base", "trialing")


def test_checkout_store_failure(owner, make_client, gateway, db, monkeypatch):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)

    def broken_update(*args, **kwargs):
        raise OperationalError("UPDATE teams", {}, Exception("database is locked"))

    monkeypatch.setattr(billing.team_crud, "update_team_billing", broken_update)

    r = make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    assert r.headers["location"] == "/error"
    assert billing_fields(team_of(db, owner.id)) == UNTOUCHED


def test_reconcile_checkout_reports_the_failing_step(owner, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=None)

    with pytest.raises(billing.ReconciliationError, match="client_reference_id"):
        billing.reconcile_checkout(db, gateway, "cs_test_1")


# --- checkout initiation -------------------------------------------------------

def test_anonymous_checkout_goes_to_sign_up(client, gateway):
    r = client.post("/api/stripe/checkout-session", data={"priceId": "price_base"})
    assert r.status_code == 303
    assert r.headers["location"] == "/sign-up?redirect=checkout&priceId=price_base"
    assert gateway.created_sessions == []


def test_signed_in_checkout(client, owner, gateway):
    r = client.post("/api/stripe/checkout-session", data={"priceId": "price_base"})
    assert r.status_code == 303
    assert r.headers["location"] == "https://checkout.stripe.test/c/0001"

    [created] = gateway.created_sessions
    assert created == {
        "price_id": "price_base",
        "client_reference_id": str(owner.id),
        "customer_id": None,
        "success_url": "http://testserver/api/stripe/checkout?session_id={CHECKOUT_SESSION_ID}",
        "cancel_url": "http://testserver/pricing",
    }


def test_checkout_reuses_existing_customer(client, owner, make_client, gateway):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)
    make_client().get(CALLBACK, params={"session_id": "cs_test_1"})

    client.post("/api/stripe/checkout-session", data={"priceId": "price_plus"})
    assert gateway.created_sessions[-1]["customer_id"] == "cus_123"


def test_checkout_when_provider_is_down(client, owner, gateway, monkeypatch):
    def unavailable(**kwargs):
        raise PaymentProviderError("Could not create checkout session.")

    monkeypatch.setattr(gateway, "create_checkout_session", unavailable)

    r = client.post("/api/stripe/checkout-session", data={"priceId": "price_base"})
    assert r.status_code == 303
    assert r.headers["location"] == "/error"


def test_checkout_requires_price(client, owner):
    r = client.post("/api/stripe/checkout-session", data={})
    assert r.status_code == 422


# --- customer portal -----------------------------------------------------------

def test_portal_without_subscription_goes_to_pricing(client, owner, gateway):
    r = client.post("/api/stripe/portal")
    assert r.status_code == 303
    assert r.headers["location"] == "/pricing"
    assert gateway.portal_sessions == []


def test_portal_for_subscribed_team(client, owner, make_client, gateway):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)
    make_client().get(CALLBACK, params={"session_id": "cs_test_1"})

    r = client.post("/api/stripe/portal")
    assert r.headers["location"] == "https://billing.stripe.test/p/cus_123"
    assert gateway.portal_sessions == [{"customer_id": "cus_123", "return_url": "http://testserver/dashboard"}]


# --- prices --------------------------------------------------------------------

def test_prices(client, gateway):
    gateway.prices = [
        PriceInfo(
            id="price_base",
            product_id="prod_base",
            product_name="Base",
            unit_amount=800,
            currency="usd",
            interval="month",
            trial_period_days=14,
        )
    ]

    r = client.get("/api/stripe/prices")
    assert r.status_code == 200
    assert r.json() == [{
        "id": "price_base",
        "product_id": "prod_base",
        "product_name": "Base",
        "unit_amount": 800,
        "currency": "usd",
        "interval": "month",
        "trial_period_days": 14,
    }]


def test_prices_when_provider_is_down(client, gateway, monkeypatch):
    def unavailable():
        raise PaymentProviderError("Could not list prices.")

    monkeypatch.setattr(gateway, "list_prices", unavailable)

    r = client.get("/api/stripe/prices")
    assert r.status_code == 502
    assert r.json()["error"]["message"] == "Pricing is temporarily unavailable."


# --- webhook -------------------------------------------------------------------

@pytest.fixture
def subscribed_team(owner, make_client, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id=owner.id)
    make_client().get(CALLBACK, params={"session_id": "cs_test_1"})
    return team_of(db, owner.id)


def post_event(client, payload, signature=VALID_SIGNATURE):
    return client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"stripe-signature": signature, "content-type": "application/json"},
    )


def test_webhook_rejects_bad_signature(client, subscribed_team, db):
    r = post_event(client, subscription_event("customer.subscription.deleted", status="canceled"), signature="forged")
    assert r.status_code == 400
    db.expire_all()
    assert db.get(Team, subscribed_team.id).subscription_status == "active"


def test_webhook_subscription_updated(client, subscribed_team, db):
    r = post_event(client, subscription_event("customer.subscription.updated", status="trialing"))
    assert r.status_code == 200
    assert r.json() == {"received": True}

    db.expire_all()
    assert billing_fields(db.get(Team, subscribed_team.id)) == ("cus_123", "sub_123", "prod_plus", "Plus", "trialing")


def test_webhook_subscription_deleted(client, subscribed_team, db):
    r = post_event(client, subscription_event("customer.subscription.deleted", status="canceled"))
    assert r.status_code == 200

    db.expire_all()
    assert billing_fields(db.get(Team, subscribed_team.id)) == ("cus_123", None, None, None, "canceled")


def test_webhook_for_unknown_customer(client, subscribed_team, db):
    r = post_event(client, subscription_event("customer.subscription.deleted", customer="cus_other", status="canceled"))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Team, subscribed_team.id).subscription_status == "active"


def test_webhook_ignores_other_events(client, subscribed_team, db):
    r = post_event(client, subscription_event("customer.subscription.created", status="incomplete"))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Team, subscribed_team.id).subscription_status == "active"


# --- normalization -------------------------------------------------------------

def test_checkout_session_from_expanded_dicts():
    session = {
        "id": "cs_1",
        "customer": {"id": "cus_9", "object": "customer"},
        "client_reference_id": "17",
        "subscription": "sub_9",
    }
    subscription = {
        "id": "sub_9",
        "status": "trialing",
        "customer": "cus_9",
        "items": {"data": [{"price": {"id": "price_9", "product": {"id": "prod_9", "name": "Plus"}}}]},
    }

    info = checkout_session_from_stripe(session, subscription)
    assert info.id == "cs_1"
    assert info.customer_id == "cus_9"
    assert info.client_reference_id == "17"
    assert info.subscription.id == "sub_9"
    assert info.subscription.status == "trialing"
    assert info.subscription.plan.product_id == "prod_9"
    assert info.subscription.plan.product_name == "Plus"


def test_checkout_session_with_unexpanded_references():
    info = checkout_session_from_stripe({"id": "cs_1", "customer": "cus_9", "subscription": "sub_9"})
    assert info.customer_id is None
    assert info.client_reference_id is None
    assert info.subscription is None


def test_subscription_without_items_has_no_plan():
    info = subscription_from_stripe({"id": "sub_1", "status": "active", "customer": "cus_1", "items": {"data": []}})
    assert info.plan is None
    assert info.customer_id == "cus_1"


def test_price_from_stripe():
    price = price_from_stripe({
        "id": "price_1",
        "product": {"id": "prod_1", "name": "Base"},
        "unit_amount": 800,
        "currency": "usd",
        "recurring": {"interval": "month", "trial_period_days": 7},
    })
    assert price == PriceInfo(
        id="price_1",
        product_id="prod_1",
        product_name="Base",
        unit_amount=800,
        currency="usd",
        interval="month",
        trial_period_days=7,
    )
    assert price_from_stripe({"id": "price_2", "product": None}) is None


def test_non_ascii_digits_are_not_a_user_id(owner, gateway, db):
    gateway.checkout_sessions["cs_test_1"] = make_checkout(user_id="\u00b2")

    with pytest.raises(billing.ReconciliationError, match="client_reference_id"):
        billing.reconcile_checkout(db, gateway, "cs_test_1")
