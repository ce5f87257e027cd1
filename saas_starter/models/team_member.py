# saas_starter/models/team_member.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from saas_starter.db.base import Base, utcnow

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"
TEAM_ROLES = (ROLE_OWNER, ROLE_MEMBER)


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
