"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

Besides API and database, the report names the configured product lookup
host. The host is not contacted; being offline is the client's concern.

==============================================================================
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from nutriscan.config import Settings, get_settings
from nutriscan.db.database import get_db


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, db: Session, settings: Settings):
        self._db = db
        self._settings = settings

    def check_database(self) -> str:
        """Check database connectivity."""
        try:
            self._db.execute(text("SELECT 1"))
            return "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return "unhealthy"

    def check_lookup_host(self) -> dict:
        """Report the configured product database."""
        return {
            "status": "configured" if self._settings.off_base_url else "missing",
            "url": self._settings.off_base_url,
        }

    def get_health(self) -> dict:
        """Get full health status."""
        db_status = self.check_database()
        lookup = self.check_lookup_host()

        overall = "healthy" if db_status == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "database": db_status,
                "lookup": lookup["status"]
            },
            "details": {
                "lookup_url": lookup["url"],
                "environment": self._settings.app_env
            }
        }


@router.get("")
async def health_check(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    Health check endpoint.

    Returns system status including API, database, and lookup host.
    """
    controller = HealthController(db, settings)
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness check for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness check for container orchestration."""
    return {"alive": True}
