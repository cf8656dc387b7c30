"""
Process metrics — /debug/vars
"""
import threading
import time

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from filmvault.db.session import get_db

router = APIRouter()


@router.get("/vars")
def debug_vars(request: Request, db: Session = Depends(get_db)) -> dict:
    """Build version, live thread count, connection pool status, clock and request counters."""
    return {
        "version": request.app.state.settings.VERSION,
        "threads": threading.active_count(),
        "database": db.get_bind().pool.status(),
        "timestamp": int(time.time()),
        **request.app.state.metrics.snapshot(),
    }
