"""
Application lifespan: logging, configuration checks and table creation.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rest_api.models import Base
from shared.config.logging import rest_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    problems = settings.validate_production_settings()
    if problems:
        for problem in problems:
            logger.critical("Invalid production setting", problem=problem)
        raise RuntimeError("Refusing to start: " + "; ".join(problems))

    logger.info(
        "Starting CRUD admin API",
        version=settings.app_version,
        environment=settings.environment,
        database=engine.url.get_backend_name(),
    )
    if settings.create_tables_on_startup:
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created or already present", tables=sorted(Base.metadata.tables))

    yield

    engine.dispose()
    logger.info("CRUD admin API stopped")
