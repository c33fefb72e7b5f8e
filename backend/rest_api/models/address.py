"""
Address model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import Limits

from .base import Base, IdType, SoftDeleteMixin, TimestampMixin
from .metadata import HasQueryMetadata, QueryMetadata

if TYPE_CHECKING:
    from .user import User


class Address(HasQueryMetadata, SoftDeleteMixin, TimestampMixin, Base):
    """
    Postal address owned by a user.
    Inherits: is_active, deleted_at from SoftDeleteMixin.
    """

    __tablename__ = "addresses"

    __query_metadata__ = QueryMetadata(
        fillable=("user_id", "name", "street", "city", "state", "postal_code", "country"),
        whereable=("user_id", "city", "state", "postal_code", "country"),
        sortable=("name", "street", "city", "state", "postal_code", "country"),
        withable=("user",),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=False)
    street: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=False)
    city: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=False)
    state: Mapped[Optional[str]] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=True)
    postal_code: Mapped[str] = mapped_column(String(Limits.POSTAL_CODE_MAX_LENGTH), nullable=False)
    country: Mapped[str] = mapped_column(String(Limits.NAME_MAX_LENGTH), nullable=False)

    user: Mapped["User"] = relationship(back_populates="addresses")

    __table_args__ = (
        Index("ix_addresses_user_active", "user_id", "is_active"),
    )
