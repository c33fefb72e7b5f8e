"""
Database configuration and session management.
Uses SQLAlchemy 2.0 sync patterns.

Besides the session plumbing this module knows how to read driver errors:
the repositories use the classifiers at the bottom to turn a failed flush
into the right HTTP status.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, ProgrammingError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from shared.config.settings import settings


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    Server databases get a sized connection pool with timeouts. SQLite gets
    foreign key enforcement, and in-memory SQLite a single shared connection
    so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {
            "connect_args": {"check_same_thread": False},
            "echo": echo,
        }
        if url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, **kwargs)
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=echo,
    )


engine = build_engine(settings.database_url, echo=settings.sql_echo)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/roles")
        def list_roles(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            RoleService(db).first_or_create({"name": "Admin"}, {...})
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """
    Run a unit of work on ``db``: commit when the block completes,
    roll back and re-raise when anything inside it fails.

    Usage:
        with transaction(db):
            user = repository.create(fields)
            repository.sync(user.id, "roles", [1, 2])
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


# =============================================================================
# Driver error classification
# =============================================================================

# MySQL error numbers
_MYSQL_DUPLICATE_ENTRY = 1062
_MYSQL_ROW_IS_REFERENCED = 1451
_MYSQL_NO_REFERENCED_ROW = 1452
_MYSQL_UNKNOWN_COLUMN = 1054

# SQLSTATE classes
_SQLSTATE_INTEGRITY_CLASS = "23"
_SQLSTATE_SYNTAX_CLASS = "42"
_SQLSTATE_FOREIGN_KEY_VIOLATION = "23503"


def find_dbapi_error(exc: BaseException | None) -> DBAPIError | None:
    """
    Walk the cause chain of ``exc`` and return the deepest SQLAlchemy
    DBAPIError found, or None.
    """
    found = None
    seen: set[int] = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, DBAPIError):
            found = current
        current = current.__cause__ or current.__context__
    return found


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    # psycopg 3 exposes .sqlstate, psycopg2 .pgcode
    state = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return state if isinstance(state, str) else None


def _mysql_errno(error: DBAPIError) -> int | None:
    args = getattr(error.orig, "args", None) or ()
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _driver_message(error: DBAPIError) -> str:
    return str(error.orig or error).lower()


def is_foreign_key_violation(exc: BaseException | None) -> bool:
    """True when a referential-integrity failure sits anywhere in the cause chain."""
    error = find_dbapi_error(exc)
    if error is None:
        return False
    if _sqlstate(error) == _SQLSTATE_FOREIGN_KEY_VIOLATION:
        return True
    if _mysql_errno(error) in (_MYSQL_ROW_IS_REFERENCED, _MYSQL_NO_REFERENCED_ROW):
        return True
    errname = getattr(error.orig, "sqlite_errorname", None)
    if errname == "SQLITE_CONSTRAINT_FOREIGNKEY":
        return True
    return "foreign key constraint" in _driver_message(error)


def is_integrity_violation(error: DBAPIError) -> bool:
    state = _sqlstate(error)
    if state is not None:
        return state.startswith(_SQLSTATE_INTEGRITY_CLASS)
    if _mysql_errno(error) in (
        _MYSQL_DUPLICATE_ENTRY,
        _MYSQL_ROW_IS_REFERENCED,
        _MYSQL_NO_REFERENCED_ROW,
    ):
        return True
    return isinstance(error, IntegrityError)


def is_schema_error(error: DBAPIError) -> bool:
    state = _sqlstate(error)
    if state is not None:
        return state.startswith(_SQLSTATE_SYNTAX_CLASS)
    if _mysql_errno(error) == _MYSQL_UNKNOWN_COLUMN:
        return True
    message = _driver_message(error)
    if "no such column" in message or "no such table" in message:
        return True
    return isinstance(error, ProgrammingError)


def status_code_for(exc: BaseException) -> int:
    """
    Derive the HTTP status for a failed persistence operation.

    - integrity class (duplicate key, broken reference) -> 409
    - schema class (unknown column or table) -> 500
    - any other driver error -> 500
    - no driver error: the exception's own non-zero integer code, else 500
    """
    error = find_dbapi_error(exc)
    if error is not None:
        if is_schema_error(error):
            return 500
        if is_integrity_violation(error):
            return 409
        return 500

    for attr in ("status_code", "code"):
        code = getattr(exc, attr, None)
        if isinstance(code, int) and not isinstance(code, bool) and code != 0:
            return code
    return 500
