# saas_starter/services/accounts.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saas_starter.core.security import hash_password, verify_password
from saas_starter.crud import invitation as invitation_crud
from saas_starter.crud import team as team_crud
from saas_starter.crud import user as user_crud
from saas_starter.models.activity_log import ActivityType
from saas_starter.models.team_member import ROLE_OWNER
from saas_starter.models.user import User
from saas_starter.services.activity import log_activity
from saas_starter.services.results import ActionResult

log = logging.getLogger("saas_starter.accounts")

INVALID_CREDENTIALS = "Invalid email or password."
INVALID_INVITATION = "Invalid or expired invitation."
EMAIL_IN_USE = "Email already in use."


def _team_id_for(db: Session, user_id: int) -> Optional[int]:
    membership = team_crud.get_membership_for_user(db, user_id)
    return membership.team_id if membership else None


def _parse_invitation_id(raw: Optional[str]) -> Optional[int]:
    raw = (raw or "").strip()
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def sign_in(db: Session, *, email: str, password: str, ip_address: Optional[str] = None) -> ActionResult:
    user = user_crud.get_active_user_by_email(db, email)
    # same answer for unknown email and wrong password
    if user is None or not verify_password(password, user.password_hash):
        return ActionResult.fail(INVALID_CREDENTIALS)

    team = None
    membership = team_crud.get_membership_for_user(db, user.id)
    if membership is not None:
        team = team_crud.get_team(db, membership.team_id)

    log_activity(db, team.id if team else None, user.id, ActivityType.SIGN_IN, ip_address)
    db.commit()
    return ActionResult(user=user, team=team)


def sign_up(
    db: Session,
    *,
    email: str,
    password: str,
    invite_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> ActionResult:
    """
    Creates the user and either joins the invited team or founds a new one.
    Every check runs before the first write and all rows commit together, so a
    rejected sign-up leaves nothing behind.
    """
    if user_crud.get_active_user_by_email(db, email) is not None:
        return ActionResult.fail(EMAIL_IN_USE)

    invitation = None
    if invite_id:
        invitation_id = _parse_invitation_id(invite_id)
        if invitation_id is not None:
            invitation = invitation_crud.get_pending_invitation(db, invitation_id=invitation_id, email=email)
        if invitation is None:
            return ActionResult.fail(INVALID_INVITATION)

    try:
        user = user_crud.create_user(
            db,
            email=email,
            password_hash=hash_password(password),
            role=invitation.role if invitation else ROLE_OWNER,
        )

        if invitation is not None:
            if not invitation_crud.mark_invitation_accepted(db, invitation):
                db.rollback()
                return ActionResult.fail(INVALID_INVITATION)
            team = team_crud.get_team(db, invitation.team_id)
            if team is None:
                db.rollback()
                return ActionResult.fail(INVALID_INVITATION)
            role = invitation.role
            log_activity(db, team.id, user.id, ActivityType.ACCEPT_INVITATION, ip_address)
        else:
            team = team_crud.create_team(db, name=f"{email}'s Team")
            role = ROLE_OWNER
            log_activity(db, team.id, user.id, ActivityType.CREATE_TEAM, ip_address)

        team_crud.add_team_member(db, user_id=user.id, team_id=team.id, role=role)
        log_activity(db, team.id, user.id, ActivityType.SIGN_UP, ip_address)
        db.commit()
    except IntegrityError:
        # lost a race on the unique email
        db.rollback()
        log.warning("sign-up for %r hit an integrity error", email, exc_info=True)
        return ActionResult.fail(EMAIL_IN_USE)

    return ActionResult(user=user, team=team)


def sign_out(db: Session, user: User, *, ip_address: Optional[str] = None) -> None:
    log_activity(db, _team_id_for(db, user.id), user.id, ActivityType.SIGN_OUT, ip_address)
    db.commit()


def update_password(
    db: Session,
    user: User,
    *,
    current_password: str,
    new_password: str,
    ip_address: Optional[str] = None,
) -> ActionResult:
    if not verify_password(current_password, user.password_hash):
        return ActionResult.fail("Current password is incorrect.")

    if current_password == new_password:
        return ActionResult.fail("New password must be different from the current password.")

    user_crud.update_password_hash(db, user, hash_password(new_password))
    log_activity(db, _team_id_for(db, user.id), user.id, ActivityType.UPDATE_PASSWORD, ip_address)
    db.commit()
    return ActionResult(success="Password updated successfully.", user=user)


def delete_account(db: Session, user: User, *, password: str, ip_address: Optional[str] = None) -> ActionResult:
    if not verify_password(password, user.password_hash):
        return ActionResult.fail("Incorrect password. Account deletion failed.")

    team_id = _team_id_for(db, user.id)
    log_activity(db, team_id, user.id, ActivityType.DELETE_ACCOUNT, ip_address)

    user_crud.soft_delete_user(db, user)
    if team_id:
        team_crud.remove_user_from_team(db, user_id=user.id, team_id=team_id)

    db.commit()
    return ActionResult(success="Account deleted.")


def update_account(
    db: Session,
    user: User,
    *,
    name: str,
    email: str,
    ip_address: Optional[str] = None,
) -> ActionResult:
    if email != user.email:
        other = user_crud.get_active_user_by_email(db, email)
        if other is not None and other.id != user.id:
            return ActionResult.fail(EMAIL_IN_USE)

    user_crud.update_account(db, user, name=name, email=email)
    log_activity(db, _team_id_for(db, user.id), user.id, ActivityType.UPDATE_ACCOUNT, ip_address)
    db.commit()
    return ActionResult(success="Account updated successfully.", user=user)
