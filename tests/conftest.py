"""Shared fixtures: a fresh in-memory app per test, a fake payment gateway."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from saas_starter.core.config import Settings
from saas_starter.db.session import make_engine
from saas_starter.main import create_app
from tests.fakes import FakeStripeGateway


@pytest.fixture
def settings() -> Settings:
    return Settings(
        auth_secret="test-secret-key",
        database_url="sqlite://",
        base_url="http://testserver",
        stripe_secret_key="sk_test_fake",
        stripe_webhook_secret="whsec_fake",
        session_cookie_secure=False,
        enable_create_all=True,
        log_level="WARNING",
    )


@pytest.fixture
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def app(settings, gateway):
    engine = make_engine(settings.database_url, in_memory_shared=True)
    application = create_app(settings, payment_gateway=gateway, engine=engine)
    yield application
    engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app, follow_redirects=False) as c:
        yield c


@pytest.fixture
def make_client(app):
    """Extra browsers (separate cookie jars) against the same app."""
    clients = []

    def _make() -> TestClient:
        c = TestClient(app, follow_redirects=False)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()
