# saas_starter/models/user.py
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from sqlalchemy import Column, Integer, String, DateTime

from saas_starter.db.base import Base, utcnow


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Deleted:
    at: datetime


Lifecycle = Union[Active, Deleted]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)

    name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="member")

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    # set together with the "-<id>-deleted" email suffix, see crud.user.soft_delete_user
    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def lifecycle(self) -> Lifecycle:
        if self.deleted_at is not None:
            return Deleted(at=self.deleted_at)
        return Active()

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
