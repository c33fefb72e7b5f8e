"""
User model and the user/role pivot table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from shared.config.constants import Limits
from shared.security.password import hash_password, is_password_hash

from .base import Base, IdType, TimestampMixin
from .metadata import HasQueryMetadata, QueryMetadata

if TYPE_CHECKING:
    from .address import Address
    from .role import Role


# Pivot rows disappear with either side
role_user = Table(
    "role_user",
    Base.metadata,
    Column("user_id", IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", IdType, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(HasQueryMetadata, TimestampMixin, Base):
    """
    An administered account.

    The password is stored as a bcrypt hash: plain values assigned to
    ``password`` are hashed on assignment.
    """

    __tablename__ = "users"

    __query_metadata__ = QueryMetadata(
        fillable=("name", "email", "password"),
        hidden=("password",),
        whereable=("name", "email"),
        sortable=("name", "roles_count"),
        withable=("roles", "addresses"),
        with_countable=("roles", "addresses"),
        syncable_relations={"role_ids": "roles"},
        creatable_relations={"addresses": "addresses"},
        aggregates=("roles_count", "addresses_count"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=False)

    # Relationships
    roles: Mapped[list["Role"]] = relationship(
        secondary=role_user, back_populates="users", passive_deletes=True
    )
    # The ORM never touches addresses on delete. The FK has no cascade, so an
    # active address blocks the delete; soft-deleted ones are purged first
    # by the repository
    addresses: Mapped[list["Address"]] = relationship(
        back_populates="user", passive_deletes="all"
    )

    @validates("password")
    def _hash_password(self, key: str, value: str) -> str:
        if value is None or is_password_hash(value):
            return value
        return hash_password(value)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}')>"
