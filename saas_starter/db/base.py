# saas_starter/db/base.py
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # tz-aware UTC, stored as naive UTC (SQLite-friendly)
    return datetime.now(timezone.utc).replace(tzinfo=None)
