"""
REST API main application.
Entry point for the FastAPI REST server.

Run with:
    uvicorn rest_api.main:app --reload --port 8000
"""

from fastapi import FastAPI

from rest_api.core import (
    configure_cors,
    lifespan,
    register_exception_handlers,
    register_middlewares,
)
from rest_api.routers.admin import router as admin_router
from rest_api.routers.public import health_router
from shared.config.settings import settings


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Administration API for users, roles and addresses",
    version=settings.app_version,
    lifespan=lifespan,
)

configure_cors(app)
register_middlewares(app)
register_exception_handlers(app)


# =============================================================================
# Routers
# =============================================================================

app.include_router(health_router)
app.include_router(admin_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.is_development,
    )
