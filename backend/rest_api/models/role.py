"""
Role model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import Limits

from .base import Base, IdType, TimestampMixin
from .metadata import HasQueryMetadata, QueryMetadata
from .user import role_user

if TYPE_CHECKING:
    from .user import User


class Role(HasQueryMetadata, TimestampMixin, Base):
    """A named permission group assigned to users."""

    __tablename__ = "roles"

    __query_metadata__ = QueryMetadata(
        fillable=("name", "description"),
        whereable=("name",),
        sortable=("name",),
        withable=("users",),
        with_countable=("users",),
        syncable_relations={"user_ids": "users"},
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    users: Mapped[list["User"]] = relationship(
        secondary=role_user, back_populates="roles", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}')>"
