# saas_starter/models/invitation.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from saas_starter.db.base import Base, utcnow

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    invited_at = Column(DateTime, nullable=False, default=utcnow)
    status = Column(String(20), nullable=False, default=STATUS_PENDING)  # pending -> accepted, once
