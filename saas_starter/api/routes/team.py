# saas_starter/api/routes/team.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from saas_starter.api.forms import action_error, action_success, validated_form
from saas_starter.core.auth import get_current_user, get_db, require_user
from saas_starter.crud.team import TeamWithMembers
from saas_starter.models.user import User
from saas_starter.schemas.team import (
    ActivityOut,
    InviteTeamMemberForm,
    MemberOut,
    RemoveTeamMemberForm,
    TeamOut,
    UserOut,
)
from saas_starter.services import teams
from saas_starter.services.activity import ip_from_request

router = APIRouter(tags=["team"])


def team_out(data: TeamWithMembers) -> TeamOut:
    t = data.team
    return TeamOut(
        id=t.id,
        name=t.name,
        stripe_customer_id=t.stripe_customer_id,
        stripe_product_id=t.stripe_product_id,
        plan_name=t.plan_name,
        subscription_status=t.subscription_status,
        members=[MemberOut.model_validate(m) for m in data.members],
    )


@router.get("/user", response_model=Optional[UserOut])
def get_user(user: Optional[User] = Depends(get_current_user)):
    return UserOut.model_validate(user) if user else None


@router.get("/team", response_model=Optional[TeamOut])
def get_team(
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
):
    if user is None:
        return None
    data = teams.get_team_for_user(db, user)
    return team_out(data) if data else None


@router.get("/activity", response_model=List[ActivityOut])
def get_activity(
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    return [ActivityOut.model_validate(e) for e in teams.get_activity_logs(db, user)]


@router.post("/team/members/remove")
def remove_team_member(
    request: Request,
    payload: RemoveTeamMemberForm = validated_form(RemoveTeamMemberForm),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    result = teams.remove_team_member(db, user, member_id=payload.member_id, ip_address=ip_from_request(request))
    if not result.ok:
        return action_error(result.error, request)
    return action_success(result.success)


@router.post("/team/invitations")
def invite_team_member(
    request: Request,
    payload: InviteTeamMemberForm = validated_form(InviteTeamMemberForm),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    result = teams.invite_team_member(
        db,
        user,
        email=payload.email,
        role=payload.role,
        ip_address=ip_from_request(request),
    )
    if not result.ok:
        return action_error(result.error, request)
    return action_success(result.success)
