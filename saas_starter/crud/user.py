# saas_starter/crud/user.py
from typing import Optional

from sqlalchemy.orm import Session

from saas_starter.db.base import utcnow
from saas_starter.models.user import User


def _active(db: Session):
    return db.query(User).filter(User.deleted_at.is_(None))


def get_active_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return _active(db).filter(User.id == user_id).first()


def get_active_user_by_email(db: Session, email: str) -> Optional[User]:
    # case-sensitive, as stored
    return _active(db).filter(User.email == email).first()


def create_user(db: Session, *, email: str, password_hash: str, role: str, name: Optional[str] = None) -> User:
    user = User(email=email, password_hash=password_hash, role=role, name=name)
    db.add(user)
    db.flush()
    return user


def update_password_hash(db: Session, user: User, password_hash: str) -> None:
    user.password_hash = password_hash
    db.add(user)


def update_account(db: Session, user: User, *, name: str, email: str) -> None:
    user.name = name
    user.email = email
    db.add(user)


def soft_delete_user(db: Session, user: User) -> None:
    """
    Marks the user Deleted and frees the email for re-registration by
    rewriting it to "<email>-<id>-deleted".
    """
    user.deleted_at = utcnow()
    user.email = f"{user.email}-{user.id}-deleted"
    db.add(user)
