"""
Pytest configuration and fixtures for backend tests.
"""

import itertools
import os

# Settings are read at import time: point them at SQLite before the app loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from rest_api.main import app
from rest_api.models import Address, Base, Role, User
from shared.infrastructure.db import build_engine, get_db
from shared.security.password import hash_password


# SQLite in-memory database for testing (StaticPool, foreign keys on)
engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)

TEST_PASSWORD = "secret123"
# Hashed once: the model keeps values that are already bcrypt hashes
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def id_sequence():
    """Fresh counter per test for unique names and emails."""
    counter = itertools.count(1)
    return lambda: next(counter)


@pytest.fixture
def make_role(db_session, id_sequence):
    def _make(name: str | None = None, description: str | None = None) -> Role:
        role = Role(name=name or f"Role {id_sequence()}", description=description)
        db_session.add(role)
        db_session.commit()
        return role

    return _make


@pytest.fixture
def make_user(db_session, id_sequence):
    def _make(name: str | None = None, email: str | None = None, roles=()) -> User:
        n = id_sequence()
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            password=TEST_PASSWORD_HASH,
        )
        user.roles = list(roles)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_address(db_session, id_sequence):
    def _make(user: User, **fields) -> Address:
        n = id_sequence()
        values = {
            "name": f"Address {n}",
            "street": f"{n} Main St",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
            "country": "US",
        }
        values.update(fields)
        address = Address(user_id=user.id, **values)
        db_session.add(address)
        db_session.commit()
        return address

    return _make


@pytest.fixture
def seed_roles(make_role):
    """Three roles: Admin, Editor, Viewer."""
    return [
        make_role("Admin", "Role with full access."),
        make_role("Editor", "Basic role for editors."),
        make_role("Viewer", None),
    ]
