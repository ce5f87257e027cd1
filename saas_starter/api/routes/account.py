# saas_starter/api/routes/account.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from saas_starter.api.forms import action_error, action_success, validated_form
from saas_starter.core.auth import get_db, get_session_manager, get_settings, require_user
from saas_starter.core.config import Settings
from saas_starter.core.session import SessionManager, clear_session_cookie, set_session_cookie
from saas_starter.models.user import User
from saas_starter.schemas.auth import DeleteAccountForm, UpdateAccountForm, UpdatePasswordForm
from saas_starter.services import accounts
from saas_starter.services.activity import ip_from_request

router = APIRouter(prefix="/account", tags=["account"])


@router.post("")
def update_account(
    request: Request,
    payload: UpdateAccountForm = validated_form(UpdateAccountForm),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    result = accounts.update_account(
        db,
        user,
        name=payload.name,
        email=payload.email,
        ip_address=ip_from_request(request),
    )
    if not result.ok:
        return action_error(result.error, request)
    return action_success(result.success)


@router.post("/password")
def update_password(
    request: Request,
    payload: UpdatePasswordForm = validated_form(UpdatePasswordForm),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    settings: Settings = Depends(get_settings),
    sessions: SessionManager = Depends(get_session_manager),
):
    result = accounts.update_password(
        db,
        user,
        current_password=payload.current_password,
        new_password=payload.new_password,
        ip_address=ip_from_request(request),
    )
    if not result.ok:
        return action_error(result.error, request)

    response = action_success(result.success)
    blob, credential = sessions.issue(user)
    set_session_cookie(response, blob, credential, secure=settings.session_cookie_secure)
    return response


@router.post("/delete")
def delete_account(
    request: Request,
    payload: DeleteAccountForm = validated_form(DeleteAccountForm),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    settings: Settings = Depends(get_settings),
):
    result = accounts.delete_account(db, user, password=payload.password, ip_address=ip_from_request(request))
    if not result.ok:
        return action_error(result.error, request)

    response = RedirectResponse("/sign-in", status_code=303)
    clear_session_cookie(response, secure=settings.session_cookie_secure)
    return response
