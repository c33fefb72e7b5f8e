"""
Whitelist validation rules for list and show query options.

Each rule raises ValueError with the client-facing message when the value
is not acceptable and returns None otherwise. These rules are where unknown
fields and relations get rejected; the query option extractor only drops
them silently.
"""

from typing import Any, Iterable, Mapping

from rest_api.models.metadata import HasQueryMetadata
from rest_api.services.crud.query_options import parse_sort_token, split_list


def validate_where_fields(attribute: str, value: Any, model: type[HasQueryMetadata]) -> None:
    """Every key of the where map must be whereable or mandatory whereable."""
    if not isinstance(value, Mapping) or not value:
        return

    allowed = set(model.query_metadata().filterable)
    invalid = [key for key in value if key not in allowed]
    if invalid:
        raise ValueError(
            f"Invalid filtering field(s) requested for {attribute}. "
            f"The following were disallowed: {', '.join(invalid)}"
        )


def validate_query_relations(attribute: str, value: Any, allowed: Iterable[str]) -> None:
    """A non-empty comma-separated string naming only allowed relations."""
    if not value or not isinstance(value, str):
        raise ValueError(
            f"The {attribute} format is invalid. It must be a comma-separated string."
        )

    allowed = set(allowed)
    invalid = [name for name in split_list(value) if name not in allowed]
    if invalid:
        raise ValueError(f"Invalid relation(s) requested for {attribute}: {', '.join(invalid)}")


def validate_sort_fields(attribute: str, value: Any, model: type[HasQueryMetadata]) -> None:
    """Every sort token, sign stripped, must be sortable."""
    if not value:
        return

    sortable = set(model.query_metadata().sortable)
    requested: list[str] = []
    for token in split_list(value):
        name, _ = parse_sort_token(token)
        if name and name not in requested:
            requested.append(name)

    invalid = [name for name in requested if name not in sortable]
    if invalid:
        raise ValueError(
            f"Invalid sorting field(s) requested for {attribute}. "
            f"The following were disallowed: {', '.join(invalid)}"
        )


def validate_mandatory_fields(
    where: Any,
    model: type[HasQueryMetadata],
    verbose: bool = False,
) -> None:
    """Every mandatory whereable field must be present in the where map."""
    mandatory = model.query_metadata().mandatory_whereable
    if not mandatory:
        return

    present = set(where.keys()) if isinstance(where, Mapping) else set()
    missing = [name for name in mandatory if name not in present]
    if missing:
        if verbose:
            raise ValueError(
                f"There are mandatory fields missing for model {model.__name__}: "
                f"{', '.join(missing)}"
            )
        raise ValueError("There are mandatory fields missing.")
