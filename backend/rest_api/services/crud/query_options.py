"""
Query option extraction.

Turns the raw ``where`` / ``with`` / ``withCount`` / ``sort`` request values
into a QueryOptions object holding only names the model whitelists. Unknown
names are dropped silently: request validation is the place that rejects
them, this module only guarantees that nothing else reaches a query.

Usage:
    options = extract_query_options(
        {"where": {"name": "Admin"}, "with": "users", "sort": "-name"},
        Role,
    )
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from shared.config.constants import (
    LIST_SEPARATOR,
    SORT_ASC_PREFIX,
    SORT_DESC_PREFIX,
    QueryParams,
    SortDirection,
)

from rest_api.models.metadata import HasQueryMetadata


@dataclass
class QueryOptions:
    """Sanitized options for one read."""

    where: dict[str, str] = field(default_factory=dict)
    with_: list[str] = field(default_factory=list)
    with_count: list[str] = field(default_factory=list)
    # Tokens keep their sign: "+name", "-roles_count", "city"
    sort: list[str] = field(default_factory=list)

    def sort_terms(self) -> list[tuple[str, SortDirection]]:
        return [parse_sort_token(token) for token in self.sort]


def split_list(raw: Any) -> list[str]:
    """
    Split a comma-separated value into tokens.

    Whitespace around tokens is stripped, empty tokens are dropped and
    duplicates removed keeping first occurrence order. A list of strings is
    accepted as already split.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts: Iterable[Any] = raw.split(LIST_SEPARATOR)
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        return []

    tokens: list[str] = []
    for part in parts:
        if not isinstance(part, str):
            continue
        token = part.strip()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def parse_sort_token(token: str) -> tuple[str, SortDirection]:
    """'-name' -> ('name', DESC); '+name' and 'name' -> ('name', ASC)."""
    if token.startswith(SORT_DESC_PREFIX):
        return token[1:], SortDirection.DESC
    if token.startswith(SORT_ASC_PREFIX):
        return token[1:], SortDirection.ASC
    return token, SortDirection.ASC


def extract_where(raw: Any, allowed: Iterable[str]) -> dict[str, str]:
    """Keep whitelisted keys with scalar values, as strings."""
    if not isinstance(raw, Mapping):
        return {}
    allowed = set(allowed)
    where: dict[str, str] = {}
    for key, value in raw.items():
        if key not in allowed:
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        where[key] = str(value)
    return where


def extract_relations(raw: Any, allowed: Iterable[str]) -> list[str]:
    allowed = set(allowed)
    return [name for name in split_list(raw) if name in allowed]


def extract_sort(raw: Any, allowed: Iterable[str]) -> list[str]:
    """Keep sort tokens whose unsigned field name is whitelisted."""
    allowed = set(allowed)
    seen: set[str] = set()
    tokens: list[str] = []
    for token in split_list(raw):
        name, _ = parse_sort_token(token)
        if name in allowed and name not in seen:
            seen.add(name)
            tokens.append(token)
    return tokens


def extract_query_options(
    params: Mapping[str, Any],
    model: type[HasQueryMetadata],
    keys: Iterable[str] = QueryParams.INDEX,
) -> QueryOptions:
    """
    Build QueryOptions for ``model`` from the request values under ``keys``.

    ``keys`` limits which options are read: show requests pass
    QueryParams.SHOW so a stray ``where`` or ``sort`` is ignored.
    """
    keys = set(keys)
    metadata = model.query_metadata()
    options = QueryOptions()
    if QueryParams.WHERE in keys:
        options.where = extract_where(params.get(QueryParams.WHERE), metadata.filterable)
    if QueryParams.WITH in keys:
        options.with_ = extract_relations(params.get(QueryParams.WITH), metadata.withable)
    if QueryParams.WITH_COUNT in keys:
        options.with_count = extract_relations(
            params.get(QueryParams.WITH_COUNT), metadata.with_countable
        )
    if QueryParams.SORT in keys:
        options.sort = extract_sort(params.get(QueryParams.SORT), metadata.sortable)
    return options
