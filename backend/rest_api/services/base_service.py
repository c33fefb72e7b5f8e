"""
Base Service Classes.

Provides the generic CRUD orchestration every entity service builds on:
- Use Repository for data access (not direct queries)
- Run every write in one transaction (commit on success, rollback on error)
- Synchronize declared relations and reload what the caller asked for
- Distinguish "nothing changed" from a real failure

Architecture:
    Router (thin) → Service (orchestration) → Repository (data access) → Model

Usage:
    from rest_api.services.base_service import BaseCRUDService

    class RoleService(BaseCRUDService[Role]):
        def __init__(self, db: Session):
            super().__init__(db, RoleRepository(db))

    role = RoleService(db).create({"name": "Admin", "user_ids": [1, 2], "with": "users"})
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, Mapping, TypeVar

from sqlalchemy.orm import Session

from rest_api.models.metadata import HasQueryMetadata
from rest_api.repositories.base import BaseRepository
from rest_api.services.crud.query_options import extract_query_options, extract_relations
from shared.config.constants import QueryParams
from shared.config.logging import get_logger
from shared.infrastructure.db import transaction
from shared.utils.exceptions import ModelOperationError, OperationKind

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=HasQueryMetadata)


class BaseService(Generic[ModelT]):
    """
    Base service holding the session and the repository.
    """

    def __init__(self, db: Session, repository: BaseRepository[ModelT]):
        self._db = db
        self._repo = repository

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @property
    def repo(self) -> BaseRepository[ModelT]:
        """Repository for data access."""
        return self._repo

    @property
    def model(self) -> type[ModelT]:
        return self._repo.model


class BaseCRUDService(BaseService[ModelT]):
    """
    Base service for entities with CRUD operations.

    ``request`` arguments are mappings of already validated input: body
    fields, relation payloads (``role_ids``, ``addresses``) and the
    ``with`` / ``withCount`` reload options.
    """

    def __init__(
        self,
        db: Session,
        repository: BaseRepository[ModelT],
        entity_name: str | None = None,
    ):
        super().__init__(db, repository)
        self._entity_name = entity_name or repository.model_name

    @property
    def entity_name(self) -> str:
        """Entity name for log messages."""
        return self._entity_name

    # =========================================================================
    # Read Operations
    # =========================================================================

    def index(self, request: Mapping[str, Any]) -> list[ModelT]:
        """List with whitelisted where / with / withCount / sort."""
        options = extract_query_options(request, self.model, QueryParams.INDEX)
        return self._repo.find_all(options)

    def find(self, entity_id: int, request: Mapping[str, Any] | None = None) -> ModelT:
        """
        Get entity by ID with whitelisted with / withCount.

        Raises:
            ModelOperationError: NOT_FOUND if entity does not exist.
        """
        options = extract_query_options(request or {}, self.model, QueryParams.SHOW)
        return self._repo.find_with_options(entity_id, options)

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(self, request: Mapping[str, Any]) -> ModelT:
        """
        Create the entity, then its relations, in one transaction.

        Raises:
            ModelOperationError: CREATE_FAILED for the row or its children,
                UPDATE_FAILED when a relation sync fails.
        """
        data = self.extract_fillable(request)
        with transaction(self._db):
            entity = self._repo.create(data)
            self.process_relations(entity, request)

        logger.info(f"{self._entity_name} created", entity_id=entity.id)
        self._after_create(entity)
        return entity

    def update(self, request: Mapping[str, Any], entity_id: int) -> ModelT:
        """
        Update scalar fields and relations in one transaction.

        Either the fields or the relations must change: when neither does,
        the NOT_MODIFIED outcome of the field update is raised.

        Raises:
            ModelOperationError: NOT_FOUND, NOT_MODIFIED, UPDATE_FAILED.
        """
        data = self.extract_fillable(request)
        with transaction(self._db):
            not_modified: ModelOperationError | None = None
            try:
                entity = self._repo.update(entity_id, data)
            except ModelOperationError as exc:
                if exc.kind is not OperationKind.NOT_MODIFIED:
                    raise
                not_modified = exc
                entity = self._repo.find(entity_id)

            relations_changed = self.process_relations(entity, request)
            if not_modified is not None and not relations_changed:
                raise not_modified

        logger.info(
            f"{self._entity_name} updated",
            entity_id=entity_id,
            fields_changed=not_modified is None,
            relations_changed=relations_changed,
        )
        self._after_update(entity)
        return entity

    def first_or_create(
        self,
        match: Mapping[str, Any],
        request: Mapping[str, Any] | None = None,
    ) -> ModelT:
        """
        Existing entity matching ``match`` or a new one. Relations are synced
        either way; children are only created with a new row.
        """
        request = request or {}
        with transaction(self._db):
            entity, created = self._repo.first_or_create(match, self.extract_fillable(request))
            self.process_relations(entity, request, skip_create=not created)

        logger.debug(f"{self._entity_name} first_or_create", entity_id=entity.id, created=created)
        return entity

    def update_or_create(
        self,
        match: Mapping[str, Any],
        request: Mapping[str, Any] | None = None,
    ) -> ModelT:
        """
        Update the entity matching ``match`` or create it. Children in the
        request are only created on the create branch, so repeating the call
        never duplicates them.
        """
        request = request or {}
        with transaction(self._db):
            entity, created = self._repo.update_or_create(match, self.extract_fillable(request))
            self.process_relations(entity, request, skip_create=not created)

        logger.info(
            f"{self._entity_name} {'created' if created else 'updated'}",
            entity_id=entity.id,
        )
        return entity

    def insert(self, rows: Iterable[Mapping[str, Any]]) -> list[ModelT]:
        """Create several entities atomically. Relations in the rows are ignored."""
        with transaction(self._db):
            entities = self._repo.insert([self.extract_fillable(row) for row in rows])
        logger.info(f"{self._entity_name} rows inserted", count=len(entities))
        return entities

    def delete(self, entity_id: int) -> bool:
        """
        Raises:
            ModelOperationError: NOT_FOUND, DELETE_BLOCKED, DELETE_FAILED.
        """
        with transaction(self._db):
            deleted = self._repo.delete(entity_id)
        logger.info(f"{self._entity_name} deleted", entity_id=entity_id)
        self._after_delete(entity_id)
        return deleted

    def delete_multiple(self, ids: Iterable[Any]) -> int:
        with transaction(self._db):
            count = self._repo.delete_multiple(ids)
        logger.info(f"{self._entity_name} bulk delete", count=count)
        return count

    def force_delete(self, entity_id: int) -> bool:
        with transaction(self._db):
            deleted = self._repo.force_delete(entity_id)
        logger.info(f"{self._entity_name} force deleted", entity_id=entity_id)
        return deleted

    def restore(self, entity_id: int, request: Mapping[str, Any] | None = None) -> ModelT:
        """Undo a soft delete and return the entity with requested relations."""
        with transaction(self._db):
            self._repo.restore(entity_id)
        logger.info(f"{self._entity_name} restored", entity_id=entity_id)
        return self.find(entity_id, request)

    # =========================================================================
    # Relation processing
    # =========================================================================

    def process_relations(
        self,
        entity: ModelT,
        request: Mapping[str, Any],
        skip_create: bool = False,
    ) -> bool:
        """
        Apply the relation payloads of ``request`` to ``entity``.

        1. Every declared syncable key present in the request replaces the
           membership of its many-to-many relation (an empty list detaches all).
        2. Unless ``skip_create``, every declared creatable key holding a
           non-empty list creates children of its one-to-many relation.
        3. The entity is reloaded with the synced relations plus the
           whitelisted ``with`` / ``withCount`` of the request.

        Returns whether step 1 or step 2 changed anything.
        """
        metadata = self.model.query_metadata()
        changed = False
        synced: list[str] = []

        for input_key, relation in metadata.syncable_relations.items():
            if input_key not in request:
                continue
            result = self._repo.sync(entity.id, relation, request[input_key] or [])
            synced.append(relation)
            changed = changed or result.changed

        if not skip_create:
            for input_key, relation in metadata.creatable_relations.items():
                rows = request.get(input_key)
                if isinstance(rows, list) and rows:
                    children = self._repo.create_many(entity, relation, rows)
                    changed = changed or bool(children)

        self.load_requested(entity, request, extra_relations=synced)
        return changed

    def load_requested(
        self,
        entity: ModelT,
        request: Mapping[str, Any],
        extra_relations: Iterable[str] = (),
    ) -> ModelT:
        metadata = self.model.query_metadata()
        with_ = list(extra_relations)
        for name in extract_relations(request.get(QueryParams.WITH), metadata.withable):
            if name not in with_:
                with_.append(name)
        with_count = extract_relations(request.get(QueryParams.WITH_COUNT), metadata.with_countable)
        if not with_ and not with_count:
            return entity
        return self._repo.load_relations(entity, with_, with_count)

    def extract_fillable(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Only the keys the model declares fillable."""
        fillable = self.model.query_metadata().fillable
        return {key: request[key] for key in fillable if key in request}

    # =========================================================================
    # Lifecycle Hooks (override in subclasses)
    # =========================================================================

    def _after_create(self, entity: ModelT) -> None:
        """Hook called after the create transaction committed."""
        pass

    def _after_update(self, entity: ModelT) -> None:
        """Hook called after the update transaction committed."""
        pass

    def _after_delete(self, entity_id: int) -> None:
        """Hook called after the delete transaction committed."""
        pass
