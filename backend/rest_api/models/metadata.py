"""
Per-model query metadata.

Each model declares which of its fields and relations may be used by the
outside world: mass assignment, filtering, sorting, eager loading, counting
and relation writes. Nothing outside these declarations ever reaches a query.

Usage:
    class Role(HasQueryMetadata, TimestampMixin, Base):
        __query_metadata__ = QueryMetadata(
            fillable=("name", "description"),
            whereable=("name",),
            sortable=("name",),
        )
"""

from dataclasses import dataclass, field
from typing import ClassVar, Mapping

from sqlalchemy import inspect


@dataclass(frozen=True)
class QueryMetadata:
    """Whitelists for one model. Anything left out is empty."""

    # Fields accepted from request bodies
    fillable: tuple[str, ...] = ()
    # Fields never serialized
    hidden: tuple[str, ...] = ()
    # Fields usable in where[field]=value
    whereable: tuple[str, ...] = ()
    # Fields every list request must filter on
    mandatory_whereable: tuple[str, ...] = ()
    # Fields usable in sort; the first one is the default order
    sortable: tuple[str, ...] = ()
    # Relations usable in with / withCount
    withable: tuple[str, ...] = ()
    with_countable: tuple[str, ...] = ()
    # Input key -> many-to-many relation, replaced on write
    syncable_relations: Mapping[str, str] = field(default_factory=dict)
    # Input key -> one-to-many relation, children created on write
    creatable_relations: Mapping[str, str] = field(default_factory=dict)
    # Computed sort fields (``roles_count``), never table qualified
    aggregates: tuple[str, ...] = ()

    @property
    def filterable(self) -> tuple[str, ...]:
        """Union of whereable and mandatory_whereable, declaration order kept."""
        extra = tuple(f for f in self.mandatory_whereable if f not in self.whereable)
        return self.whereable + extra


class HasQueryMetadata:
    """Capability mixin for models that expose query metadata."""

    __query_metadata__: ClassVar[QueryMetadata] = QueryMetadata()

    @classmethod
    def query_metadata(cls) -> QueryMetadata:
        return cls.__query_metadata__

    @classmethod
    def default_sort_field(cls) -> str:
        """First sortable field, else the primary key."""
        metadata = cls.query_metadata()
        if metadata.sortable:
            return metadata.sortable[0]
        return inspect(cls).primary_key[0].key

    # Aggregate counts are loaded on demand and kept outside mapped state
    def set_aggregate(self, name: str, value: int) -> None:
        self.__dict__.setdefault("_aggregates", {})[name] = value

    def clear_aggregates(self) -> None:
        self.__dict__.pop("_aggregates", None)

    def loaded_aggregates(self) -> dict[str, int]:
        return dict(self.__dict__.get("_aggregates", {}))
