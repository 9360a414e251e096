from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from garge.database import get_db, settings

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

@router.get("/healthz")
@router.get("/api/v1/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness plus a database round trip; reports whether rules run in-process"""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check query failed: {e}")
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "automation_processing": settings.automation_processing_enabled,
    }
