"""Sliding session refresh, route protection, request ids, health probes."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from saas_starter.core.session import SessionCredential, SessionManager
from saas_starter.crud import user as user_crud
from tests.helpers import sign_up, user_by_email


def session_cookie_headers(response):
    return [h for h in response.headers.get_list("set-cookie") if h.startswith("session=")]


def test_get_with_live_session_refreshes_cookie(client):
    sign_up(client, "a@x.com")

    r = client.get("/api/user")
    assert r.status_code == 200
    [cookie] = session_cookie_headers(r)
    assert "Max-Age=0" not in cookie
    assert "HttpOnly" in cookie


def test_post_does_not_refresh_cookie(client):
    sign_up(client, "a@x.com")

    r = client.post("/api/account", data={"name": "Ada", "email": "a@x.com"})
    assert r.status_code == 200
    assert session_cookie_headers(r) == []


def test_garbage_cookie_is_cleared(make_client):
    r = make_client().get("/api/user", headers={"cookie": "session=garbage"})
    assert r.status_code == 200
    assert r.json() is None
    [cookie] = session_cookie_headers(r)
    assert "Max-Age=0" in cookie


def test_expired_session_on_protected_page(app, client, make_client, db):
    sign_up(client, "a@x.com")
    user = user_by_email(db, "a@x.com")
    expired = app.state.session_manager.sign(
        SessionCredential(user_id=user.id, expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )

    r = make_client().get("/dashboard", headers={"cookie": f"session={expired}"})
    assert r.status_code == 303
    assert r.headers["location"] == "/sign-in"
    assert "Max-Age=0" in session_cookie_headers(r)[0]


def test_cookie_signed_with_another_secret_is_anonymous(make_client):
    foreign, _ = SessionManager("other-secret").issue(SimpleNamespace(id=1))

    r = make_client().get("/api/user", headers={"cookie": f"session={foreign}"})
    assert r.json() is None


def test_request_id_is_generated_or_echoed(client):
    generated = client.get("/api/user")
    assert generated.headers["x-request-id"]

    echoed = client.get("/api/user", headers={"x-request-id": "trace-abc"})
    assert echoed.headers["x-request-id"] == "trace-abc"


def test_request_id_on_redirects_and_errors(client):
    assert client.get("/api/activity").headers["x-request-id"]
    assert client.post("/api/auth/sign-in", data={}).headers["x-request-id"]


def test_healthz(client):
    r = client.get("/api/healthz")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_readyz(client):
    r = client.get("/api/readyz")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["db"] == "up"


def test_cookie_of_deleted_user_is_cleared(client, db):
    sign_up(client, "a@x.com")
    user_crud.soft_delete_user(db, user_by_email(db, "a@x.com"))
    db.commit()

    r = client.get("/api/user")
    assert r.json() is None
    [cookie] = session_cookie_headers(r)
    assert "Max-Age=0" in cookie
