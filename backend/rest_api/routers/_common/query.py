"""
Query string parsing for list and show endpoints.

Turns ``?where[city]=Lima&with=roles&sort=-name`` into the mapping the
request validators expect:

    {"where": {"city": "Lima"}, "with": "roles", "sort": "-name"}

A parameter given more than once becomes a list, which the validators
then reject as "must be a string".
"""

import re
from typing import Any

from starlette.datastructures import QueryParams as StarletteQueryParams

from shared.config.constants import QueryParams

_BRACKET_KEY = re.compile(r"^(?P<name>[A-Za-z_]+)\[(?P<key>[^\[\]]*)\]$")


def _collapse(values: list[str]) -> Any:
    return values[0] if len(values) == 1 else values


def parse_query_options(query_params: StarletteQueryParams) -> dict[str, Any]:
    """Collect the query-option parameters, nesting ``where[field]`` keys."""
    flat: dict[str, list[str]] = {}
    nested: dict[str, dict[str, list[str]]] = {}

    for raw_key, value in query_params.multi_items():
        match = _BRACKET_KEY.match(raw_key)
        if match:
            name = match.group("name")
            if name in QueryParams.INDEX:
                nested.setdefault(name, {}).setdefault(match.group("key"), []).append(value)
            continue
        if raw_key in QueryParams.INDEX:
            flat.setdefault(raw_key, []).append(value)

    params: dict[str, Any] = {name: _collapse(values) for name, values in flat.items()}
    for name, items in nested.items():
        # A plain ``where=x`` next to ``where[k]=v`` stays a scalar and fails validation
        if name in params:
            continue
        params[name] = {key: _collapse(values) for key, values in items.items()}
    return params
