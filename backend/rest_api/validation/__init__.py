"""
Request validation: whitelist rules and the list/show request validators.
"""

from .rules import (
    validate_mandatory_fields,
    validate_query_relations,
    validate_sort_fields,
    validate_where_fields,
)
from .requests import MANDATORY_FIELDS_KEY, validate_index_request, validate_show_request

__all__ = [
    "validate_mandatory_fields",
    "validate_query_relations",
    "validate_sort_fields",
    "validate_where_fields",
    "MANDATORY_FIELDS_KEY",
    "validate_index_request",
    "validate_show_request",
]
