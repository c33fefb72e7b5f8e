"""
Utilities module: Exceptions.
"""

from shared.utils.exceptions import (
    AppException,
    ModelOperationError,
    OperationKind,
    RequestValidationFailed,
    UnknownRelationError,
)

__all__ = [
    "AppException",
    "ModelOperationError",
    "OperationKind",
    "RequestValidationFailed",
    "UnknownRelationError",
]
