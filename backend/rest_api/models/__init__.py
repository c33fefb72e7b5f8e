"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin, SoftDeleteMixin
- metadata: QueryMetadata, HasQueryMetadata
- user: User, role_user pivot
- role: Role
- address: Address
"""

# Base classes
from .base import Base, IdType, SoftDeleteMixin, TimestampMixin, is_soft_deletable

# Query metadata
from .metadata import HasQueryMetadata, QueryMetadata

# Entities
from .user import User, role_user
from .role import Role
from .address import Address

__all__ = [
    "Base",
    "IdType",
    "SoftDeleteMixin",
    "TimestampMixin",
    "is_soft_deletable",
    "HasQueryMetadata",
    "QueryMetadata",
    "User",
    "role_user",
    "Role",
    "Address",
]
