"""
Entity serialization.

Only what was asked for leaves the API: column values minus the model's
hidden fields, the relations that are actually loaded, and the aggregate
counts loaded with ``withCount``. The result is passed through a pydantic
output schema with ``exclude_unset`` so absent relations stay absent.
"""

from typing import Any, Iterable

from pydantic import BaseModel
from sqlalchemy import inspect

from rest_api.models.metadata import HasQueryMetadata


def _hidden_fields(entity: Any) -> set[str]:
    if isinstance(entity, HasQueryMetadata):
        return set(entity.query_metadata().hidden)
    return set()


def entity_to_dict(entity: Any, depth: int = 1) -> dict[str, Any]:
    """
    Plain dict of an ORM entity.

    Related entities are serialized ``depth`` levels deep; below that only
    their columns are included.
    """
    state = inspect(entity)
    mapper = state.mapper
    hidden = _hidden_fields(entity)

    data: dict[str, Any] = {
        attr.key: getattr(entity, attr.key)
        for attr in mapper.column_attrs
        if attr.key not in hidden
    }

    if depth > 0:
        unloaded = state.unloaded
        for rel in mapper.relationships:
            if rel.key in unloaded or rel.key in hidden:
                continue
            value = getattr(entity, rel.key)
            if value is None:
                data[rel.key] = None
            elif rel.uselist:
                data[rel.key] = [entity_to_dict(item, depth - 1) for item in value]
            else:
                data[rel.key] = entity_to_dict(value, depth - 1)

    if isinstance(entity, HasQueryMetadata):
        data.update(entity.loaded_aggregates())
    return data


def serialize(entity: Any, schema: type[BaseModel]) -> dict[str, Any]:
    """JSON-ready dict of ``entity`` shaped by ``schema``."""
    return schema.model_validate(entity_to_dict(entity)).model_dump(
        mode="json", exclude_unset=True
    )


def serialize_many(entities: Iterable[Any], schema: type[BaseModel]) -> list[dict[str, Any]]:
    return [serialize(entity, schema) for entity in entities]
