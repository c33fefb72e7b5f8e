"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its database.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.logging import rest_api_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db


router = APIRouter(prefix="/api", tags=["health"])

HEALTHY = "healthy"
DEGRADED = "degraded"


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": HEALTHY,
        "service": settings.app_name,
        "environment": settings.environment,
    }


@router.get("/health/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check that verifies database connectivity.
    Returns 503 Service Unavailable when the database cannot be reached.
    """
    try:
        db.execute(text("SELECT 1"))
        database = {"status": HEALTHY}
    except SQLAlchemyError as exc:
        logger.error("Database health check failed", error=str(exc))
        database = {"status": DEGRADED, "error": type(exc).__name__}

    checks = {
        "service": settings.app_name,
        "environment": settings.environment,
        "status": database["status"],
        "dependencies": {"database": database},
    }
    if database["status"] != HEALTHY:
        return JSONResponse(content=checks, status_code=503)
    return checks


@router.get("/version")
def version():
    return {"name": settings.app_name, "version": settings.app_version}
