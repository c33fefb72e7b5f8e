"""
CRUD helpers shared by repositories and services.

Provides:
- QueryOptions: sanitized where/with/withCount/sort for one read
- extract_query_options: whitelist raw request values against model metadata
"""

from .query_options import (
    QueryOptions,
    extract_query_options,
    extract_relations,
    extract_sort,
    extract_where,
    parse_sort_token,
    split_list,
)

__all__ = [
    "QueryOptions",
    "extract_query_options",
    "extract_relations",
    "extract_sort",
    "extract_where",
    "parse_sort_token",
    "split_list",
]
