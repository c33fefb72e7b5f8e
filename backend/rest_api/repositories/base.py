"""
Base Repository implementation.

Generic data access over any model carrying HasQueryMetadata. Every
identifier that reaches a statement comes from the model's metadata or
its mapper, never straight from the request.

Repositories flush, they never commit: the calling service owns the
transaction. Driver failures are re-raised as ModelOperationError with the
original exception chained and an HTTP status derived from it.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Mapping, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, delete, false, func, insert, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import RelationshipDirection, RelationshipProperty, Session, selectinload

from shared.config.constants import COUNT_SUFFIX, SortDirection
from shared.config.logging import get_logger
from shared.infrastructure.db import is_foreign_key_violation, status_code_for
from shared.utils.exceptions import ModelOperationError, OperationKind, UnknownRelationError

from rest_api.models.base import is_soft_deletable, utcnow
from rest_api.models.metadata import HasQueryMetadata
from rest_api.services.crud.query_options import QueryOptions

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=HasQueryMetadata)


@dataclass
class SyncResult:
    """Delta of a many-to-many sync, as related ids."""

    attached: list[int] = field(default_factory=list)
    detached: list[int] = field(default_factory=list)
    unchanged: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.attached or self.detached)


def sanitize_ids(ids: Iterable[Any]) -> list[int]:
    """Positive integers only, first occurrence order, duplicates removed."""
    clean: list[int] = []
    for raw in ids or ():
        if isinstance(raw, bool):
            continue
        try:
            value = int(raw)
        except (TypeError, ValueError):
            continue
        if value > 0 and value not in clean:
            clean.append(value)
    return clean


class BaseRepository(Generic[ModelT]):
    """
    Repository over one model.

    Subclasses set ``model``; the generic form takes it as an argument:

        repo = BaseRepository(db, Role)
        role = repo.find(3)
    """

    model: type[ModelT]

    def __init__(self, db: Session, model: type[ModelT] | None = None):
        self._db = db
        if model is not None:
            self.model = model
        if getattr(self, "model", None) is None:
            raise TypeError(f"{type(self).__name__} needs a model")
        self._mapper = inspect(self.model)
        self._pk = self._mapper.primary_key[0]

    @property
    def model_name(self) -> str:
        return self.model.__name__

    @property
    def metadata(self):
        return self.model.query_metadata()

    @property
    def db(self) -> Session:
        return self._db

    # =========================================================================
    # Reads
    # =========================================================================

    def find(self, entity_id: int, include_inactive: bool = False) -> ModelT:
        """Entity by primary key, or NOT_FOUND."""
        stmt = select(self.model).where(self._pk == entity_id)
        if not include_inactive:
            stmt = self._apply_active_filter(stmt)
        entity = self._db.scalar(stmt)
        if entity is None:
            raise ModelOperationError.not_found(self.model_name, entity_id)
        return entity

    def find_with_options(self, entity_id: int, options: QueryOptions) -> ModelT:
        """Entity by primary key with the requested relations and counts loaded."""
        counts = self._count_names(options.with_count)
        stmt = self._select_with_counts(counts).where(self._pk == entity_id)
        stmt = self._apply_active_filter(stmt)
        stmt = stmt.options(*self._eager_options(options.with_)).execution_options(
            populate_existing=True
        )
        row = self._db.execute(stmt).first()
        if row is None:
            raise ModelOperationError.not_found(self.model_name, entity_id)
        return self._attach_counts(row, counts)

    def find_all(self, options: QueryOptions | None = None) -> list[ModelT]:
        """
        All matching rows: where filters, eager loads, counts and sort.

        There is no pagination; the full filtered set is returned.
        """
        options = options or QueryOptions()
        counts = self._count_names(options.with_count)
        stmt = self._select_with_counts(counts)
        stmt = self._apply_active_filter(stmt)
        stmt = self._apply_where(stmt, options.where)
        stmt = stmt.options(*self._eager_options(options.with_)).execution_options(
            populate_existing=True
        )
        stmt = self._apply_sort(stmt, options)
        return [self._attach_counts(row, counts) for row in self._db.execute(stmt).all()]

    def load_relations(
        self,
        entity: ModelT,
        with_: Sequence[str] = (),
        with_count: Sequence[str] = (),
    ) -> ModelT:
        """
        Reload ``entity`` in place with relations and counts.

        Unlike find_with_options this accepts any relation the model maps:
        callers pass relations they have just written, not request input.
        """
        relations = [name for name in with_ if self._relationship(name) is not None]
        counts = [name for name in with_count if self._relationship(name) is not None]
        stmt = (
            self._select_with_counts(counts)
            .where(self._pk == self._identity(entity))
            .options(*self._eager_options(relations, whitelist=False))
            .execution_options(populate_existing=True)
        )
        row = self._db.execute(stmt).first()
        if row is None:
            raise ModelOperationError.not_found(self.model_name, self._identity(entity))
        return self._attach_counts(row, counts)

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, fields: Mapping[str, Any]) -> ModelT:
        """Insert one row. Driver failures become CREATE_FAILED."""
        entity = self.model(**dict(fields))
        try:
            self._db.add(entity)
            self._db.flush()
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.CREATE_FAILED, exc) from exc
        logger.debug("Row created", model=self.model_name, entity_id=self._identity(entity))
        return entity

    def first_or_create(
        self,
        match: Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
    ) -> tuple[ModelT, bool]:
        """
        First row matching ``match``, else a new row from ``match`` + ``values``.
        Returns (entity, created). Any failure is a CREATE_FAILED.
        """
        try:
            existing = self._first_matching(match)
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.CREATE_FAILED, exc) from exc
        if existing is not None:
            return existing, False
        return self.create({**match, **(values or {})}), True

    def update_or_create(
        self,
        match: Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
    ) -> tuple[ModelT, bool]:
        """
        Update the first row matching ``match`` with ``values``, else create one.
        Returns (entity, created). Failures are UPDATE_FAILED or CREATE_FAILED
        depending on the branch taken.
        """
        try:
            existing = self._first_matching(match)
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.UPDATE_FAILED, exc) from exc
        if existing is None:
            return self.create({**match, **(values or {})}), True

        self._assign(existing, values or {})
        try:
            self._db.flush()
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.UPDATE_FAILED, exc) from exc
        return existing, False

    def insert(self, field_sets: Iterable[Mapping[str, Any]]) -> list[ModelT]:
        """Create rows one at a time so each gets its id. Stops at the first failure."""
        return [self.create(fields) for fields in field_sets]

    def update(self, entity_id: int, fields: Mapping[str, Any]) -> ModelT:
        """
        Apply ``fields`` to the row. NOT_MODIFIED when no value actually
        changes, UPDATE_FAILED when the flush fails.
        """
        entity = self.find(entity_id)
        if not self._assign(entity, fields):
            raise ModelOperationError.not_modified(self.model_name, entity_id, fields.keys())
        try:
            self._db.flush()
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.UPDATE_FAILED, exc, entity_id=entity_id) from exc
        return entity

    def fill(self, entity_id: int, fields: Mapping[str, Any]) -> ModelT:
        """Apply ``fields`` without flushing."""
        entity = self.find(entity_id)
        self._assign(entity, fields)
        return entity

    def save(self, entity: ModelT) -> bool:
        """Flush ``entity`` when it is new or dirty. Returns whether anything was written."""
        state = inspect(entity)
        if state.persistent and not self._db.is_modified(entity):
            return False
        try:
            self._db.add(entity)
            self._db.flush()
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.UPDATE_FAILED, exc) from exc
        return True

    def sync(self, entity_id: int, relation: str, related_ids: Iterable[Any]) -> SyncResult:
        """
        Replace the membership of a many-to-many relation with ``related_ids``.

        Works directly on the pivot table; the relation attribute is expired
        afterwards so the next access reloads it.
        """
        rel = self._relationship(relation)
        if rel is None or rel.direction is not RelationshipDirection.MANYTOMANY:
            raise UnknownRelationError(self.model_name, relation)

        entity = self.find(entity_id)
        wanted = sanitize_ids(related_ids)
        (_, local_col), = rel.synchronize_pairs
        (_, remote_col), = rel.secondary_synchronize_pairs
        owner_id = self._identity(entity)

        try:
            current = list(
                self._db.scalars(select(remote_col).where(local_col == owner_id))
            )
            result = SyncResult(
                attached=[i for i in wanted if i not in current],
                detached=[i for i in current if i not in wanted],
                unchanged=[i for i in current if i in wanted],
            )
            if result.detached:
                self._db.execute(
                    delete(rel.secondary).where(
                        local_col == owner_id, remote_col.in_(result.detached)
                    )
                )
            if result.attached:
                self._db.execute(
                    insert(rel.secondary),
                    [{local_col.key: owner_id, remote_col.key: i} for i in result.attached],
                )
        except SQLAlchemyError as exc:
            raise self._failure(
                OperationKind.UPDATE_FAILED, exc, entity_id=entity_id, relation=relation
            ) from exc

        self._db.expire(entity, [relation])
        logger.debug(
            "Relation synced",
            model=self.model_name,
            entity_id=entity_id,
            relation=relation,
            attached=result.attached,
            detached=result.detached,
        )
        return result

    def create_many(
        self,
        entity: ModelT,
        relation: str,
        rows: Iterable[Mapping[str, Any]],
    ) -> list[Any]:
        """
        Create one-to-many children of ``entity``. The foreign key always
        points at ``entity`` whatever the rows say. Failures are
        CREATE_FAILED for the child model.
        """
        rel = self._relationship(relation)
        if rel is None or rel.direction is not RelationshipDirection.ONETOMANY:
            raise UnknownRelationError(self.model_name, relation, expected="one-to-many")

        child_model = rel.mapper.class_
        child_mapper = rel.mapper
        if issubclass(child_model, HasQueryMetadata) and child_model.query_metadata().fillable:
            allowed = set(child_model.query_metadata().fillable)
        else:
            allowed = set(child_mapper.column_attrs.keys())
        links = {
            child_mapper.get_property_by_column(child_col).key: getattr(
                entity, self._mapper.get_property_by_column(parent_col).key
            )
            for parent_col, child_col in rel.synchronize_pairs
        }

        children = []
        try:
            for row in rows:
                values = {k: v for k, v in row.items() if k in allowed}
                values.update(links)
                child = child_model(**values)
                self._db.add(child)
                children.append(child)
            self._db.flush()
        except SQLAlchemyError as exc:
            raise ModelOperationError.failed(
                OperationKind.CREATE_FAILED,
                child_model.__name__,
                cause=exc,
                status_code=status_code_for(exc),
                relation=relation,
            ) from exc

        self._db.expire(entity, [relation])
        return children

    def delete(self, entity_id: int) -> bool:
        """
        Delete the row (soft delete for soft-deletable models).

        Soft-deleted children of a hard-deleted row are removed with it; an
        active child, or any other foreign key still pointing at the row,
        gives DELETE_BLOCKED (409). Any other failure is DELETE_FAILED.
        """
        entity = self.find(entity_id)
        try:
            if is_soft_deletable(self.model):
                entity.soft_delete()
            else:
                self._purge_inactive_children([entity_id])
                self._db.delete(entity)
            self._db.flush()
        except SQLAlchemyError as exc:
            if is_foreign_key_violation(exc):
                raise ModelOperationError.delete_blocked(
                    self.model_name, entity_id, cause=exc
                ) from exc
            raise self._failure(OperationKind.DELETE_FAILED, exc, entity_id=entity_id) from exc
        return True

    def force_delete(self, entity_id: int) -> bool:
        """Hard delete, soft-deleted rows included."""
        entity = self.find(entity_id, include_inactive=True)
        try:
            self._purge_inactive_children([entity_id])
            self._db.delete(entity)
            self._db.flush()
        except SQLAlchemyError as exc:
            if is_foreign_key_violation(exc):
                raise ModelOperationError.delete_blocked(
                    self.model_name, entity_id, cause=exc
                ) from exc
            raise self._failure(OperationKind.DELETE_FAILED, exc, entity_id=entity_id) from exc
        return True

    def delete_multiple(self, ids: Iterable[Any]) -> int:
        """
        Bulk delete by id. Invalid ids are dropped; nothing left is a no-op.
        Returns the number of rows affected.
        """
        clean = sanitize_ids(ids)
        if not clean:
            return 0

        if is_soft_deletable(self.model):
            stmt = (
                update(self.model)
                .where(self._pk.in_(clean), self.model.is_active.is_(True))
                .values(is_active=False, deleted_at=utcnow())
            )
        else:
            stmt = delete(self.model).where(self._pk.in_(clean))

        try:
            if not is_soft_deletable(self.model):
                self._purge_inactive_children(clean)
            result = self._db.execute(stmt.execution_options(synchronize_session="fetch"))
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.DELETE_FAILED, exc, ids=clean) from exc
        return result.rowcount

    def restore(self, entity_id: int) -> bool:
        """Undo a soft delete. RESTORE_FAILED for models without soft delete."""
        if not is_soft_deletable(self.model):
            raise ModelOperationError.failed(
                OperationKind.RESTORE_FAILED,
                self.model_name,
                entity_id=entity_id,
                reason="model has no soft delete",
            )
        entity = self.find(entity_id, include_inactive=True)
        try:
            entity.restore()
            self._db.flush()
        except SQLAlchemyError as exc:
            raise self._failure(OperationKind.RESTORE_FAILED, exc, entity_id=entity_id) from exc
        return True

    # =========================================================================
    # Statement building
    # =========================================================================

    def _apply_active_filter(self, stmt: Select) -> Select:
        if is_soft_deletable(self.model):
            stmt = stmt.where(self.model.is_active.is_(True))
        return stmt

    def _apply_where(self, stmt: Select, where: Mapping[str, str]) -> Select:
        allowed = set(self.metadata.filterable)
        for name, value in where.items():
            if name not in allowed or name not in self._mapper.column_attrs:
                continue
            column = getattr(self.model, name)
            coerced = _coerce(column, value)
            stmt = stmt.where(false() if coerced is _INVALID else column == coerced)
        return stmt

    def _apply_sort(self, stmt: Select, options: QueryOptions) -> Select:
        sortable = set(self.metadata.sortable)
        terms = [(name, d) for name, d in options.sort_terms() if name in sortable]
        if not terms:
            terms = [(self.model.default_sort_field(), SortDirection.ASC)]

        for name, direction in terms:
            expression = self._sort_expression(name)
            if expression is None:
                continue
            stmt = stmt.order_by(
                expression.desc() if direction is SortDirection.DESC else expression.asc()
            )
        return stmt

    def _sort_expression(self, name: str) -> ColumnElement | None:
        if name in self.metadata.aggregates and name.endswith(COUNT_SUFFIX):
            relation = name[: -len(COUNT_SUFFIX)]
            if self._relationship(relation) is None:
                return None
            return self._count_expression(relation)
        if name in self._mapper.column_attrs:
            return getattr(self.model, name)
        return None

    def _eager_options(self, names: Iterable[str], whitelist: bool = True) -> list:
        allowed = set(self.metadata.withable)
        options = []
        for name in names:
            if whitelist and name not in allowed:
                continue
            rel = self._relationship(name)
            if rel is None:
                continue
            attribute = getattr(self.model, name)
            target = rel.mapper.class_
            if is_soft_deletable(target):
                attribute = attribute.and_(target.is_active.is_(True))
            options.append(selectinload(attribute))
        return options

    def _count_names(self, names: Iterable[str]) -> list[str]:
        allowed = set(self.metadata.with_countable)
        return [n for n in names if n in allowed and self._relationship(n) is not None]

    def _count_expression(self, relation: str) -> ColumnElement:
        """Correlated COUNT of the related rows (active ones only)."""
        rel = self._relationship(relation)
        target = rel.mapper.class_
        stmt = select(func.count())
        if rel.secondary is not None:
            stmt = (
                stmt.select_from(rel.secondary)
                .join(target, rel.secondaryjoin)
                .where(rel.primaryjoin)
            )
        else:
            stmt = stmt.select_from(target).where(rel.primaryjoin)
        if is_soft_deletable(target):
            stmt = stmt.where(target.is_active.is_(True))
        return stmt.scalar_subquery()

    def _select_with_counts(self, counts: Sequence[str]) -> Select:
        columns = [self._count_expression(n).label(f"{n}{COUNT_SUFFIX}") for n in counts]
        return select(self.model, *columns)

    def _attach_counts(self, row: Any, counts: Sequence[str]) -> ModelT:
        entity = row[0]
        entity.clear_aggregates()
        for index, name in enumerate(counts, start=1):
            entity.set_aggregate(f"{name}{COUNT_SUFFIX}", row[index] or 0)
        return entity

    # =========================================================================
    # Helpers
    # =========================================================================

    def _relationship(self, name: str) -> RelationshipProperty | None:
        return self._mapper.relationships.get(name)

    def _purge_inactive_children(self, parent_ids: Sequence[int]) -> None:
        """Hard delete soft-deleted rows of one-to-many relations pointing at ``parent_ids``."""
        for rel in self._mapper.relationships:
            target = rel.mapper.class_
            if rel.direction is not RelationshipDirection.ONETOMANY or not is_soft_deletable(target):
                continue
            for local, remote in rel.local_remote_pairs:
                if local is not self._pk:
                    continue
                stmt = delete(target).where(remote.in_(parent_ids), target.is_active.is_(False))
                result = self._db.execute(stmt.execution_options(synchronize_session="fetch"))
                if result.rowcount:
                    logger.info(
                        "Purged soft-deleted children",
                        model=self.model_name,
                        relation=rel.key,
                        count=result.rowcount,
                    )

    def _identity(self, entity: ModelT) -> Any:
        return getattr(entity, self._mapper.get_property_by_column(self._pk).key)

    def _first_matching(self, match: Mapping[str, Any]) -> ModelT | None:
        stmt = self._apply_active_filter(select(self.model).filter_by(**match))
        return self._db.scalars(stmt.limit(1)).first()

    def _assign(self, entity: ModelT, fields: Mapping[str, Any]) -> bool:
        """Set attributes; True when at least one value really changed."""
        state = inspect(entity)
        changed = False
        for key, value in fields.items():
            # Load the current value so the history comparison is exact
            getattr(entity, key)
            setattr(entity, key, value)
            if state.attrs[key].history.has_changes():
                changed = True
        return changed

    def _failure(
        self,
        kind: OperationKind,
        exc: BaseException,
        **log_context: Any,
    ) -> ModelOperationError:
        return ModelOperationError.failed(
            kind,
            self.model_name,
            cause=exc,
            status_code=status_code_for(exc),
            **log_context,
        )


_INVALID = object()


def _coerce(column: Any, value: str) -> Any:
    """Convert a filter string to the column's Python type; _INVALID if it can't be."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type is str or isinstance(value, python_type):
        return value
    if python_type is bool:
        lowered = value.lower()
        if lowered in ("1", "true"):
            return True
        if lowered in ("0", "false"):
            return False
        return _INVALID
    try:
        return python_type(value)
    except (TypeError, ValueError):
        return _INVALID
