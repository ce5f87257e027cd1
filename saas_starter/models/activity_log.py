# saas_starter/models/activity_log.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from saas_starter.db.base import Base, utcnow


class ActivityType(str, enum.Enum):
    SIGN_UP = "SIGN_UP"
    SIGN_IN = "SIGN_IN"
    SIGN_OUT = "SIGN_OUT"
    UPDATE_PASSWORD = "UPDATE_PASSWORD"
    DELETE_ACCOUNT = "DELETE_ACCOUNT"
    UPDATE_ACCOUNT = "UPDATE_ACCOUNT"
    CREATE_TEAM = "CREATE_TEAM"
    REMOVE_TEAM_MEMBER = "REMOVE_TEAM_MEMBER"
    INVITE_TEAM_MEMBER = "INVITE_TEAM_MEMBER"
    ACCEPT_INVITATION = "ACCEPT_INVITATION"


class ActivityLog(Base):
    """Append-only; rows are never updated."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    ip_address = Column(String(45), nullable=True)
