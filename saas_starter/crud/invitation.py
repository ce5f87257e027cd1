# saas_starter/crud/invitation.py
from typing import Optional

from sqlalchemy.orm import Session

from saas_starter.models.invitation import Invitation, STATUS_ACCEPTED, STATUS_PENDING


def create_invitation(db: Session, *, team_id: int, email: str, role: str, invited_by: int) -> Invitation:
    invitation = Invitation(
        team_id=team_id,
        email=email,
        role=role,
        invited_by=invited_by,
        status=STATUS_PENDING,
    )
    db.add(invitation)
    db.flush()
    return invitation


def get_pending_invitation(db: Session, *, invitation_id: int, email: str) -> Optional[Invitation]:
    """The invitation a sign-up may consume: right id, right email, still pending."""
    return (
        db.query(Invitation)
        .filter(
            Invitation.id == invitation_id,
            Invitation.email == email,
            Invitation.status == STATUS_PENDING,
        )
        .first()
    )


def get_pending_invitation_for_email(db: Session, *, team_id: int, email: str) -> Optional[Invitation]:
    return (
        db.query(Invitation)
        .filter(
            Invitation.team_id == team_id,
            Invitation.email == email,
            Invitation.status == STATUS_PENDING,
        )
        .first()
    )


def mark_invitation_accepted(db: Session, invitation: Invitation) -> bool:
    """
    pending -> accepted. The UPDATE is guarded on status so two concurrent
    sign-ups cannot both consume the same invitation.
    """
    updated = (
        db.query(Invitation)
        .filter(Invitation.id == invitation.id, Invitation.status == STATUS_PENDING)
        .update({Invitation.status: STATUS_ACCEPTED}, synchronize_session=False)
    )
    if updated:
        invitation.status = STATUS_ACCEPTED
    return bool(updated)
