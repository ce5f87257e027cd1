# saas_starter/services/activity.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from saas_starter.crud.activity_log import insert_activity_log
from saas_starter.models.activity_log import ActivityType

log = logging.getLogger("saas_starter.activity")


def _forwarded_for(value: str) -> Optional[str]:
    # RFC 7239, first hop only: "for=203.0.113.7;proto=https, for=..."
    for part in value.split(",")[0].split(";"):
        key, _, val = part.strip().partition("=")
        if key.lower() == "for" and val:
            return val.strip('"')
    return None


def ip_from_request(request: Optional[Request]) -> Optional[str]:
    """Client IP. Proxy headers (Forwarded, X-Forwarded-For, X-Real-IP) win over the socket peer."""
    if request is None:
        return None

    headers = request.headers
    candidates = (
        _forwarded_for(headers.get("forwarded", "")),
        headers.get("x-forwarded-for", "").split(",")[0].strip(),
        headers.get("x-real-ip", "").strip(),
    )
    for ip in candidates:
        if ip:
            return ip
    return request.client.host if request.client else None


def log_activity(
    db: Session,
    team_id: Optional[int],
    user_id: int,
    action: ActivityType,
    ip_address: Optional[str] = None,
) -> None:
    """
    Queue an activity row on the caller's unit of work; it is written by the
    caller's commit. Users without a team leave no trail.
    """
    if not team_id:
        log.debug("activity %s for user %s skipped: no team", action.value, user_id)
        return
    insert_activity_log(db, team_id=team_id, user_id=user_id, action=action, ip_address=ip_address)
