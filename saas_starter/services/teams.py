# saas_starter/services/teams.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from saas_starter.crud import invitation as invitation_crud
from saas_starter.crud import team as team_crud
from saas_starter.crud.activity_log import ActivityEntry, get_recent_activity_for_user
from saas_starter.models.activity_log import ActivityType
from saas_starter.models.user import User
from saas_starter.services.activity import log_activity
from saas_starter.services.results import ActionResult

NOT_IN_TEAM = "Not part of a team."


def remove_team_member(db: Session, user: User, *, member_id: int, ip_address: Optional[str] = None) -> ActionResult:
    membership = team_crud.get_membership_for_user(db, user.id)
    if membership is None:
        return ActionResult.fail(NOT_IN_TEAM)

    team_crud.remove_team_member(db, member_id=member_id, team_id=membership.team_id)
    log_activity(db, membership.team_id, user.id, ActivityType.REMOVE_TEAM_MEMBER, ip_address)
    db.commit()
    return ActionResult(success="Team member removed successfully.")


def invite_team_member(
    db: Session,
    user: User,
    *,
    email: str,
    role: str,
    ip_address: Optional[str] = None,
) -> ActionResult:
    membership = team_crud.get_membership_for_user(db, user.id)
    if membership is None:
        return ActionResult.fail(NOT_IN_TEAM)
    team_id = membership.team_id

    if team_crud.is_email_member_of_team(db, email=email, team_id=team_id):
        return ActionResult.fail("User is already a member of this team.")

    if invitation_crud.get_pending_invitation_for_email(db, team_id=team_id, email=email) is not None:
        return ActionResult.fail("An invitation has already been sent to this email.")

    invitation_crud.create_invitation(db, team_id=team_id, email=email, role=role, invited_by=user.id)
    log_activity(db, team_id, user.id, ActivityType.INVITE_TEAM_MEMBER, ip_address)
    db.commit()
    # TODO: deliver the invitation link by email once an outbound mail provider is configured
    return ActionResult(success="Invitation sent successfully.")


def get_team_for_user(db: Session, user: User) -> Optional[team_crud.TeamWithMembers]:
    return team_crud.get_team_for_user(db, user.id)


def get_activity_logs(db: Session, user: User) -> List[ActivityEntry]:
    return get_recent_activity_for_user(db, user.id, limit=10)
