"""
Health check endpoints.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from growguard.api.responses import ok
from growguard.models.base import get_db
from growguard.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.
    Verifies database connectivity.
    """
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        database = "disconnected"

    return ok({
        "status": "healthy" if database == "connected" else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "database": database
    }, message="长盈智投API服务运行正常" if database == "connected" else "数据库连接失败")
