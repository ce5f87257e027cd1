import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from saas_starter import __version__
from saas_starter.core.auth import get_db

router = APIRouter(tags=["health"])

NO_STORE = {"Cache-Control": "no-store"}


@router.get("/healthz")
def healthz() -> dict:
    return {
        "ok": True,
        "service": "saas_starter",
        "version": __version__,
        "ts": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """Ready once the database answers a trivial query."""
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"ok": False, "db": "down"}, headers=NO_STORE)
    latency_ms = round((time.perf_counter() - started) * 1000.0, 2)
    return JSONResponse(content={"ok": True, "db": "up", "db_latency_ms": latency_ms}, headers=NO_STORE)
