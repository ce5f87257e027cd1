# saas_starter/crud/team.py
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from saas_starter.db.base import utcnow
from saas_starter.models.team import Team
from saas_starter.models.team_member import TeamMember
from saas_starter.models.user import User


@dataclass(frozen=True)
class MemberEntry:
    member_id: int
    user_id: int
    name: Optional[str]
    email: str
    role: str


@dataclass(frozen=True)
class TeamWithMembers:
    team: Team
    members: List[MemberEntry]


# --- teams -------------------------------------------------------------------

def create_team(db: Session, *, name: str) -> Team:
    team = Team(name=name)
    db.add(team)
    db.flush()
    return team


def get_team(db: Session, team_id: int) -> Optional[Team]:
    return db.get(Team, team_id)


def get_team_by_stripe_customer_id(db: Session, customer_id: str) -> Optional[Team]:
    return db.query(Team).filter(Team.stripe_customer_id == customer_id).first()


def update_team_billing(
    db: Session,
    team: Team,
    *,
    stripe_customer_id: Optional[str] = None,
    stripe_subscription_id: Optional[str],
    stripe_product_id: Optional[str],
    plan_name: Optional[str],
    subscription_status: str,
) -> Team:
    """Full overwrite of the billing fields; replaying the same values is a no-op in effect."""
    if stripe_customer_id is not None:
        team.stripe_customer_id = stripe_customer_id
    team.stripe_subscription_id = stripe_subscription_id
    team.stripe_product_id = stripe_product_id
    team.plan_name = plan_name
    team.subscription_status = subscription_status
    team.updated_at = utcnow()
    db.add(team)
    return team


def clear_team_subscription(db: Session, team: Team, *, subscription_status: str) -> Team:
    return update_team_billing(
        db,
        team,
        stripe_subscription_id=None,
        stripe_product_id=None,
        plan_name=None,
        subscription_status=subscription_status,
    )


# --- memberships -------------------------------------------------------------

def add_team_member(db: Session, *, user_id: int, team_id: int, role: str) -> TeamMember:
    member = TeamMember(user_id=user_id, team_id=team_id, role=role)
    db.add(member)
    db.flush()
    return member


def get_membership_for_user(db: Session, user_id: int) -> Optional[TeamMember]:
    # one team per user; the first membership row wins
    return (
        db.query(TeamMember)
        .filter(TeamMember.user_id == user_id)
        .order_by(TeamMember.id.asc())
        .first()
    )


def get_team_members(db: Session, team_id: int) -> List[MemberEntry]:
    memberships = (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id)
        .order_by(TeamMember.id.asc())
        .all()
    )
    if not memberships:
        return []

    user_ids = [m.user_id for m in memberships]
    users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()}

    out: List[MemberEntry] = []
    for m in memberships:
        u = users.get(m.user_id)
        if u is None:
            continue
        out.append(MemberEntry(member_id=m.id, user_id=u.id, name=u.name, email=u.email, role=m.role))
    return out


def get_team_for_user(db: Session, user_id: int) -> Optional[TeamWithMembers]:
    membership = get_membership_for_user(db, user_id)
    if membership is None:
        return None
    team = get_team(db, membership.team_id)
    if team is None:
        return None
    return TeamWithMembers(team=team, members=get_team_members(db, team.id))


def remove_team_member(db: Session, *, member_id: int, team_id: int) -> int:
    """Deletes a membership row by id, scoped to `team_id`. Returns rows removed."""
    return (
        db.query(TeamMember)
        .filter(TeamMember.id == member_id, TeamMember.team_id == team_id)
        .delete(synchronize_session=False)
    )


def remove_user_from_team(db: Session, *, user_id: int, team_id: int) -> int:
    return (
        db.query(TeamMember)
        .filter(TeamMember.user_id == user_id, TeamMember.team_id == team_id)
        .delete(synchronize_session=False)
    )


def is_email_member_of_team(db: Session, *, email: str, team_id: int) -> bool:
    return (
        db.query(TeamMember.id)
        .join(User, User.id == TeamMember.user_id)
        .filter(
            TeamMember.team_id == team_id,
            User.email == email,
            User.deleted_at.is_(None),
        )
        .first()
        is not None
    )
