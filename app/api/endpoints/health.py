"""
Health check and monitoring endpoints.

Provides detailed health status for the database and the reset code store.
"""

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy import text
from datetime import datetime, timezone

from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_verification_manager
from app.core.verification import VerificationCodeManager

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns 200 OK if the service is running.
    Use this for simple uptime monitoring and load balancer health checks.
    """
    return {
        "status": "healthy",
        "timestamp": _timestamp()
    }


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(
    db: Session = Depends(get_db),
    manager: VerificationCodeManager = Depends(get_verification_manager)
) -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Database connectivity (local identity backend only)
    - Reset code store and its sweeper thread
    """
    health_status = {
        "status": "healthy",
        "timestamp": _timestamp(),
        "identity_backend": settings.IDENTITY_BACKEND,
        "checks": {}
    }

    if settings.IDENTITY_BACKEND == "local":
        try:
            db.execute(text("SELECT 1"))
            health_status["checks"]["database"] = {
                "status": "healthy",
                "message": "Database connection successful"
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = {
                "status": "unhealthy",
                "message": f"Database error: {str(e)}"
            }

    health_status["checks"]["reset_codes"] = {
        "status": "healthy" if manager.running else "degraded",
        "outstanding": manager.outstanding(),
        "sweeper_running": manager.running
    }
    if not manager.running and health_status["status"] == "healthy":
        health_status["status"] = "degraded"

    return health_status
