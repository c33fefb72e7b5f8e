"""
CORS configuration for the admin frontend.

ALLOWED_ORIGINS (comma-separated) lists the origins in production; outside
production the local dev servers of the admin UI are allowed as well.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings
from shared.infrastructure.correlation import REQUEST_ID_HEADER

# Angular and Vite dev servers
DEV_ORIGINS = [
    "http://localhost:4200",
    "http://127.0.0.1:4200",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# The admin API only exposes these verbs
ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]

ALLOWED_HEADERS = ["Accept", "Accept-Language", "Content-Type", REQUEST_ID_HEADER]


def get_cors_origins() -> list[str]:
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.environment != "production":
        origins += [o for o in DEV_ORIGINS if o not in origins]
    return origins


def configure_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=False,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=[REQUEST_ID_HEADER],
        max_age=0 if settings.is_development else 600,
    )
