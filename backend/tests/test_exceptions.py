"""
Tests for the operation error taxonomy and HTTP status derivation.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from shared.infrastructure.db import (
    find_dbapi_error,
    is_foreign_key_violation,
    status_code_for,
)
from shared.utils.exceptions import (
    ModelOperationError,
    OperationKind,
    RequestValidationFailed,
    UnknownRelationError,
)


class FakeDriverError(Exception):
    """Driver exception exposing a SQLSTATE like psycopg does."""

    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class HasStatus(Exception):
    def __init__(self, status_code):
        super().__init__("with status")
        self.status_code = status_code


def integrity(message: str, sqlstate: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, FakeDriverError(message, sqlstate))


class TestModelOperationError:

    def test_not_found(self):
        exc = ModelOperationError.not_found("User", 5)
        assert exc.kind is OperationKind.NOT_FOUND
        assert exc.status_code == 404
        assert exc.detail == "Resource not found."
        assert exc.is_error

    @pytest.mark.parametrize(
        "kind, message",
        [
            (OperationKind.CREATE_FAILED, "Error creating model Role"),
            (OperationKind.UPDATE_FAILED, "Error updating model Role"),
            (OperationKind.DELETE_FAILED, "Error deleting model Role"),
            (OperationKind.RESTORE_FAILED, "Error restoring model Role"),
        ],
    )
    def test_failures_default_to_500(self, kind, message):
        exc = ModelOperationError.failed(kind, "Role")
        assert exc.status_code == 500
        assert exc.detail == message
        assert exc.model_name == "Role"

    def test_failure_keeps_cause_and_status(self):
        cause = integrity("duplicate key value")
        exc = ModelOperationError.failed(
            OperationKind.CREATE_FAILED, "User", cause=cause, status_code=409
        )
        assert exc.__cause__ is cause
        assert exc.status_code == 409

    def test_not_modified_is_not_an_error(self):
        exc = ModelOperationError.not_modified("User", 3, ["name", "email"])
        assert exc.status_code == 400
        assert not exc.is_error
        assert exc.detail == (
            "Model User was not modified. Record ID: 3. Attempted fields: name, email."
        )

    def test_delete_blocked(self):
        exc = ModelOperationError.delete_blocked("User", 3)
        assert exc.status_code == 409
        assert not exc.is_error
        assert exc.detail == "This record cannot be deleted because it has related data."

    def test_unknown_relation(self):
        exc = UnknownRelationError("User", "addresses")
        assert exc.status_code == 400
        assert "addresses" in exc.detail

    def test_request_validation_failed(self):
        exc = RequestValidationFailed({"sort": ["bad"]})
        assert exc.status_code == 422
        assert exc.detail == "The given data was invalid."
        assert exc.errors == {"sort": ["bad"]}


class TestStatusDerivation:

    def test_unique_violation_is_conflict(self):
        assert status_code_for(integrity("UNIQUE constraint failed: users.email")) == 409

    def test_sqlstate_integrity_class_is_conflict(self):
        assert status_code_for(integrity("duplicate key", sqlstate="23505")) == 409

    def test_schema_error_is_server_error(self):
        exc = ProgrammingError("SELECT ...", {}, FakeDriverError("column x", sqlstate="42703"))
        assert status_code_for(exc) == 500

    def test_missing_column_message_is_server_error(self):
        exc = OperationalError("SELECT ...", {}, FakeDriverError("no such column: users.x"))
        assert status_code_for(exc) == 500

    def test_other_driver_error_is_server_error(self):
        exc = OperationalError("SELECT ...", {}, FakeDriverError("database is locked"))
        assert status_code_for(exc) == 500

    def test_walks_the_cause_chain(self):
        driver_error = integrity("UNIQUE constraint failed: roles.name")
        try:
            try:
                raise driver_error
            except IntegrityError as inner:
                raise RuntimeError("wrapped") from inner
        except RuntimeError as outer:
            assert find_dbapi_error(outer) is driver_error
            assert status_code_for(outer) == 409

    def test_keeps_non_zero_status_of_non_driver_error(self):
        assert status_code_for(HasStatus(418)) == 418

    def test_zero_status_falls_back_to_500(self):
        assert status_code_for(HasStatus(0)) == 500
        assert status_code_for(ValueError("boom")) == 500


class TestForeignKeyDetection:

    def test_sqlite_message(self):
        assert is_foreign_key_violation(integrity("FOREIGN KEY constraint failed"))

    def test_postgres_sqlstate(self):
        assert is_foreign_key_violation(integrity("violates", sqlstate="23503"))

    def test_unique_violation_is_not_foreign_key(self):
        assert not is_foreign_key_violation(integrity("UNIQUE constraint failed", sqlstate="23505"))

    def test_no_driver_error(self):
        assert not is_foreign_key_violation(ValueError("boom"))
