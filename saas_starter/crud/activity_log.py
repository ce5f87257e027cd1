# saas_starter/crud/activity_log.py
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from saas_starter.models.activity_log import ActivityLog, ActivityType
from saas_starter.models.user import User


@dataclass(frozen=True)
class ActivityEntry:
    id: int
    action: str
    timestamp: datetime
    ip_address: Optional[str]
    user_name: Optional[str]


def insert_activity_log(
    db: Session,
    *,
    team_id: int,
    user_id: Optional[int],
    action: ActivityType,
    ip_address: Optional[str],
) -> ActivityLog:
    row = ActivityLog(
        team_id=team_id,
        user_id=user_id,
        action=action.value,
        ip_address=ip_address or "",
    )
    db.add(row)
    return row


def get_recent_activity_for_user(db: Session, user_id: int, limit: int = 10) -> List[ActivityEntry]:
    rows = (
        db.query(ActivityLog)
        .filter(ActivityLog.user_id == user_id)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    user = db.get(User, user_id)
    name = user.name if user else None
    return [
        ActivityEntry(
            id=r.id,
            action=r.action,
            timestamp=r.timestamp,
            ip_address=r.ip_address,
            user_name=name,
        )
        for r in rows
    ]
