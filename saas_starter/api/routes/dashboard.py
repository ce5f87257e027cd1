# saas_starter/api/routes/dashboard.py
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from saas_starter.api.routes.team import team_out
from saas_starter.core.auth import get_db, require_user
from saas_starter.models.user import User
from saas_starter.schemas.team import UserOut
from saas_starter.services import teams

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    """Team settings view: who is signed in, their team, its members and plan."""
    data = teams.get_team_for_user(db, user)
    if data is None:
        return RedirectResponse("/create-team", status_code=303)
    return {
        "user": UserOut.model_validate(user).model_dump(),
        "team": team_out(data).model_dump(),
    }
