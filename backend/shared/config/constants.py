"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import QueryParams, SortDirection, Limits

    raw_sort = request.get(QueryParams.SORT)
"""

from enum import Enum
from typing import Final


# =============================================================================
# Query string parameters understood by list/show endpoints
# =============================================================================


class QueryParams:
    """Names of the query-option parameters."""

    WHERE: Final[str] = "where"
    WITH: Final[str] = "with"
    WITH_COUNT: Final[str] = "withCount"
    SORT: Final[str] = "sort"

    INDEX: Final[tuple[str, ...]] = (WHERE, WITH, WITH_COUNT, SORT)
    SHOW: Final[tuple[str, ...]] = (WITH, WITH_COUNT)


# Separator for list-valued query parameters (with=roles,addresses)
LIST_SEPARATOR: Final[str] = ","


# =============================================================================
# Sorting
# =============================================================================


class SortDirection(str, Enum):
    """Order direction for a sort token."""

    ASC = "asc"
    DESC = "desc"


SORT_ASC_PREFIX: Final[str] = "+"
SORT_DESC_PREFIX: Final[str] = "-"

# Suffix of computed count columns (roles -> roles_count)
COUNT_SUFFIX: Final[str] = "_count"


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Length limits shared by request validation and column definitions."""

    QUERY_VALUE_MAX_LENGTH: Final[int] = 255
    NAME_MAX_LENGTH: Final[int] = 255
    POSTAL_CODE_MAX_LENGTH: Final[int] = 20
    PASSWORD_MIN_LENGTH: Final[int] = 8
