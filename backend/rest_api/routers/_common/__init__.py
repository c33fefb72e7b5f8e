"""
Common utilities shared across routers.
"""

from .query import parse_query_options
from .serialization import entity_to_dict, serialize, serialize_many

__all__ = [
    "parse_query_options",
    "entity_to_dict",
    "serialize",
    "serialize_many",
]
