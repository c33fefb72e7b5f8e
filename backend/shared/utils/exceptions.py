"""
Centralized HTTP exceptions for consistent error handling.

Every exception here is an HTTPException that logs itself when raised, so
the boundary only has to serialize ``detail`` (and ``errors`` when present).

Usage:
    from shared.utils.exceptions import ModelOperationError, OperationKind

    raise ModelOperationError.not_found("User", user_id)
    raise ModelOperationError.failed(OperationKind.CREATE_FAILED, "Role", cause=exc)
    raise RequestValidationFailed({"sort": ["..."]})
"""

from enum import Enum
from typing import Any, Iterable

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        # Log the error with context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# Model operation outcomes
# =============================================================================


class OperationKind(str, Enum):
    """What a persistence operation was doing when it stopped."""

    NOT_FOUND = "not_found"
    CREATE_FAILED = "create_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"
    DELETE_BLOCKED = "delete_blocked"
    RESTORE_FAILED = "restore_failed"
    NOT_MODIFIED = "not_modified"


_DEFAULT_STATUS: dict[OperationKind, int] = {
    OperationKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OperationKind.CREATE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OperationKind.UPDATE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OperationKind.DELETE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OperationKind.DELETE_BLOCKED: status.HTTP_409_CONFLICT,
    OperationKind.RESTORE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OperationKind.NOT_MODIFIED: status.HTTP_400_BAD_REQUEST,
}

_VERBS: dict[OperationKind, str] = {
    OperationKind.CREATE_FAILED: "creating",
    OperationKind.UPDATE_FAILED: "updating",
    OperationKind.DELETE_FAILED: "deleting",
    OperationKind.RESTORE_FAILED: "restoring",
}

# Outcomes of a correctly processed request that simply did not mutate anything
_NON_ERRORS = frozenset({OperationKind.NOT_MODIFIED, OperationKind.DELETE_BLOCKED})

_LOG_LEVELS: dict[OperationKind, str] = {
    OperationKind.NOT_FOUND: "warning",
    OperationKind.NOT_MODIFIED: "info",
    OperationKind.DELETE_BLOCKED: "warning",
}

RESOURCE_NOT_FOUND = "Resource not found."
DELETE_BLOCKED_MESSAGE = "This record cannot be deleted because it has related data."


class ModelOperationError(AppException):
    """
    Outcome of a repository operation that did not complete normally.

    ``kind`` says which operation stopped and ``status_code`` what the client
    sees. The driver exception, when there is one, is chained as
    ``__cause__``. Use the classmethods rather than the constructor.
    """

    def __init__(
        self,
        kind: OperationKind,
        model_name: str,
        detail: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
        **log_context: Any,
    ):
        self.kind = kind
        self.model_name = model_name
        code = status_code if status_code is not None else _DEFAULT_STATUS[kind]
        if cause is not None:
            log_context.setdefault("cause", f"{type(cause).__name__}: {cause}")

        super().__init__(
            status_code=code,
            detail=detail,
            log_level=_LOG_LEVELS.get(kind, "error"),
            kind=kind.value,
            model=model_name,
            **log_context,
        )
        if cause is not None:
            self.__cause__ = cause

    @property
    def is_error(self) -> bool:
        """False for outcomes that are business results rather than faults."""
        return self.kind not in _NON_ERRORS

    @classmethod
    def not_found(cls, model_name: str, entity_id: Any = None) -> "ModelOperationError":
        return cls(
            OperationKind.NOT_FOUND,
            model_name,
            RESOURCE_NOT_FOUND,
            entity_id=entity_id,
        )

    @classmethod
    def failed(
        cls,
        kind: OperationKind,
        model_name: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
        **log_context: Any,
    ) -> "ModelOperationError":
        """CREATE/UPDATE/DELETE/RESTORE failure with the standard message."""
        detail = f"Error {_VERBS[kind]} model {model_name}"
        return cls(kind, model_name, detail, status_code=status_code, cause=cause, **log_context)

    @classmethod
    def delete_blocked(
        cls,
        model_name: str,
        entity_id: Any = None,
        cause: BaseException | None = None,
    ) -> "ModelOperationError":
        return cls(
            OperationKind.DELETE_BLOCKED,
            model_name,
            DELETE_BLOCKED_MESSAGE,
            cause=cause,
            entity_id=entity_id,
        )

    @classmethod
    def not_modified(
        cls,
        model_name: str,
        entity_id: Any,
        attempted_fields: Iterable[str],
    ) -> "ModelOperationError":
        fields = list(attempted_fields)
        detail = (
            f"Model {model_name} was not modified. Record ID: {entity_id}. "
            f"Attempted fields: {', '.join(fields)}."
        )
        return cls(
            OperationKind.NOT_MODIFIED,
            model_name,
            detail,
            entity_id=entity_id,
            attempted_fields=fields,
        )


# =============================================================================
# 400 / 422 Request errors
# =============================================================================


class UnknownRelationError(AppException):
    """
    A relation name that the model does not declare, or that has the wrong
    shape for the requested operation (400). Raised for programmer errors,
    never wrapped into ModelOperationError.
    """

    def __init__(self, model_name: str, relation: str, expected: str = "many-to-many"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Relation '{relation}' is not a {expected} relation of model {model_name}.",
            log_level="error",
            model=model_name,
            relation=relation,
        )
        self.model_name = model_name
        self.relation = relation


VALIDATION_FAILED_MESSAGE = "The given data was invalid."


class RequestValidationFailed(AppException):
    """
    Request input failed validation (422).

    Usage:
        raise RequestValidationFailed({"with": ["Invalid relation(s) requested for with: foo"]})
    """

    def __init__(self, errors: dict[str, list[str]], **log_context: Any):
        self.errors = errors
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=VALIDATION_FAILED_MESSAGE,
            log_level="info",
            fields=sorted(errors),
            **log_context,
        )
