"""
Infrastructure module: Database sessions and request correlation.

Provides:
- Database engine, sessions, transactions and driver error classification (db.py)
- Request correlation IDs for logging (correlation.py)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    build_engine,
    get_db,
    get_db_context,
    transaction,
)
from shared.infrastructure.correlation import (
    CorrelationIdMiddleware,
    get_request_id,
)

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "build_engine",
    "get_db",
    "get_db_context",
    "transaction",
    # correlation
    "CorrelationIdMiddleware",
    "get_request_id",
]
