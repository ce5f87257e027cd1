"""Request and lookup shortcuts shared by the test modules."""

from __future__ import annotations

from fastapi.testclient import TestClient

from saas_starter.core.security import hash_password
from saas_starter.crud import team as team_crud
from saas_starter.crud import user as user_crud
from saas_starter.models.activity_log import ActivityLog
from saas_starter.models.invitation import Invitation
from saas_starter.models.user import User

PASSWORD = "password123"


def sign_up(client: TestClient, email: str, password: str = PASSWORD, **extra):
    return client.post("/api/auth/sign-up", data={"email": email, "password": password, **extra})


def sign_in(client: TestClient, email: str, password: str = PASSWORD, **extra):
    return client.post("/api/auth/sign-in", data={"email": email, "password": password, **extra})


def create_user_without_team(db, email: str, password: str = PASSWORD) -> User:
    user = user_crud.create_user(db, email=email, password_hash=hash_password(password), role="member")
    db.commit()
    return user


def user_by_email(db, email: str):
    db.expire_all()
    return db.query(User).filter(User.email == email).first()


def team_of(db, user_id: int):
    db.expire_all()
    membership = team_crud.get_membership_for_user(db, user_id)
    return team_crud.get_team(db, membership.team_id) if membership else None


def actions_for_team(db, team_id: int):
    db.expire_all()
    rows = db.query(ActivityLog).filter(ActivityLog.team_id == team_id).order_by(ActivityLog.id.asc()).all()
    return [r.action for r in rows]


def invitations(db):
    db.expire_all()
    return db.query(Invitation).order_by(Invitation.id.asc()).all()
