"""
Role Repository - Data access for roles.
"""

from sqlalchemy.orm import Session

from rest_api.models import Role
from .base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """Repository for Role entities."""

    model = Role


def get_role_repository(db: Session) -> RoleRepository:
    """Factory function for dependency injection."""
    return RoleRepository(db)
