"""
Request validators for list and show endpoints.

Usage:
    params = validate_index_request(raw_params, User)
    users = UserService(db).index(params)

Every failing rule adds a message under its attribute; when any rule failed
a RequestValidationFailed (422) carrying all of them is raised.
"""

from typing import Any, Callable, Mapping

from rest_api.models.metadata import HasQueryMetadata
from rest_api.validation.rules import (
    validate_mandatory_fields,
    validate_query_relations,
    validate_sort_fields,
    validate_where_fields,
)
from shared.config.constants import Limits, QueryParams
from shared.config.settings import settings
from shared.utils.exceptions import RequestValidationFailed

MANDATORY_FIELDS_KEY = "mandatory_fields"


class _ErrorBag:
    """Messages per attribute, in the order they were added."""

    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, attribute: str, message: str) -> None:
        self.errors.setdefault(attribute, []).append(message)

    def check(self, attribute: str, rule: Callable[[], None]) -> None:
        try:
            rule()
        except ValueError as exc:
            self.add(attribute, str(exc))

    def raise_if_any(self) -> None:
        if self.errors:
            raise RequestValidationFailed(self.errors)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _check_string(bag: _ErrorBag, attribute: str, value: Any) -> bool:
    if not isinstance(value, str):
        bag.add(attribute, f"The {attribute} field must be a string.")
        return False
    if len(value) > Limits.QUERY_VALUE_MAX_LENGTH:
        bag.add(
            attribute,
            f"The {attribute} field must not be greater than "
            f"{Limits.QUERY_VALUE_MAX_LENGTH} characters.",
        )
        return False
    return True


def _check_where(bag: _ErrorBag, value: Any, model: type[HasQueryMetadata]) -> None:
    attribute = QueryParams.WHERE
    if not isinstance(value, Mapping):
        bag.add(attribute, f"The {attribute} field must be an array.")
        return
    if not value and not model.query_metadata().mandatory_whereable:
        bag.add(attribute, f"The {attribute} field must have at least 1 items.")
        return

    bag.check(attribute, lambda: validate_where_fields(attribute, value, model))
    for key, item in value.items():
        if item is not None:
            _check_string(bag, f"{attribute}.{key}", item)


def _check_relations(
    bag: _ErrorBag,
    attribute: str,
    value: Any,
    allowed: tuple[str, ...],
) -> None:
    if _check_string(bag, attribute, value):
        bag.check(attribute, lambda: validate_query_relations(attribute, value, allowed))


def validate_index_request(
    params: Mapping[str, Any],
    model: type[HasQueryMetadata],
) -> dict[str, Any]:
    """
    Validate where / with / withCount / sort for a list request.

    Returns the present options, ready for the service.

    Raises:
        RequestValidationFailed: with errors keyed by attribute
            (``where``, ``where.<field>``, ``with``, ``withCount``, ``sort``,
            ``mandatory_fields``).
    """
    metadata = model.query_metadata()
    bag = _ErrorBag()
    validated: dict[str, Any] = {}

    where = params.get(QueryParams.WHERE)
    if where is not None:
        _check_where(bag, where, model)
        validated[QueryParams.WHERE] = where

    for attribute, allowed in (
        (QueryParams.WITH, metadata.withable),
        (QueryParams.WITH_COUNT, metadata.with_countable),
    ):
        value = params.get(attribute)
        if not _is_blank(value):
            _check_relations(bag, attribute, value, allowed)
            validated[attribute] = value

    sort = params.get(QueryParams.SORT)
    if not _is_blank(sort):
        if isinstance(sort, str):
            bag.check(QueryParams.SORT, lambda: validate_sort_fields(QueryParams.SORT, sort, model))
        else:
            bag.add(QueryParams.SORT, f"The {QueryParams.SORT} field must be a string.")
        validated[QueryParams.SORT] = sort

    # Runs after the field rules, like an "after" hook
    bag.check(
        MANDATORY_FIELDS_KEY,
        lambda: validate_mandatory_fields(where, model, verbose=settings.is_development),
    )

    bag.raise_if_any()
    return validated


def validate_show_request(
    params: Mapping[str, Any],
    model: type[HasQueryMetadata],
) -> dict[str, Any]:
    """Validate with / withCount for a single-record request."""
    metadata = model.query_metadata()
    bag = _ErrorBag()
    validated: dict[str, Any] = {}

    for attribute, allowed in (
        (QueryParams.WITH, metadata.withable),
        (QueryParams.WITH_COUNT, metadata.with_countable),
    ):
        value = params.get(attribute)
        if not _is_blank(value):
            _check_relations(bag, attribute, value, allowed)
            validated[attribute] = value

    bag.raise_if_any()
    return validated
