#!/usr/bin/env python3
"""
Minimal seed:
- Ensures an owner account with its own team exists.
- Safe to run multiple times (idempotent).
"""
import os

from sqlalchemy.orm import Session

from saas_starter.core.security import hash_password
from saas_starter.crud import team as team_crud
from saas_starter.crud import user as user_crud
from saas_starter.db.session import init_db, make_engine, make_session_factory
from saas_starter.models.team_member import ROLE_OWNER
from saas_starter.models.user import User


def ensure_owner(db: Session, email: str, password: str) -> User:
    user = user_crud.get_active_user_by_email(db, email)
    if user is None:
        user = user_crud.create_user(db, email=email, password_hash=hash_password(password), role=ROLE_OWNER)

    if team_crud.get_membership_for_user(db, user.id) is None:
        team = team_crud.create_team(db, name="Test Team")
        team_crud.add_team_member(db, user_id=user.id, team_id=team.id, role=ROLE_OWNER)

    db.commit()
    return user


def main():
    database_url = os.environ.get("DATABASE_URL", "sqlite:///./saas_starter.db")
    email = os.environ.get("SEED_OWNER_EMAIL", "test@example.com")
    password = os.environ.get("SEED_OWNER_PASSWORD", "admin12345")

    engine = make_engine(database_url)
    init_db(engine)
    db = make_session_factory(engine)()
    try:
        u = ensure_owner(db, email, password)
        print(f"OK: owner ensured -> {u.email} (id={u.id})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
