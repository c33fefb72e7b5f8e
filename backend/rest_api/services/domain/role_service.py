"""
Role Service.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from rest_api.models import Role
from rest_api.repositories import RoleRepository
from rest_api.services.base_service import BaseCRUDService

# Roles every installation starts with
DEFAULT_ROLES: tuple[tuple[str, str], ...] = (
    ("Admin", "Role with full access."),
    ("Manager", "Basic role for Managers."),
    ("Designer", "Basic role for designers."),
    ("Purchaser", "Basic role for purchasers."),
    ("Editor", "Basic role for editors."),
    ("User", "Basic role for users."),
)


class RoleService(BaseCRUDService[Role]):
    """Service for role management. ``user_ids`` replaces a role's members."""

    def __init__(self, db: Session):
        super().__init__(db, RoleRepository(db))

    def ensure_default_roles(self) -> list[Role]:
        """Create the default roles that are missing. Existing ones are left alone."""
        return [
            self.first_or_create({"name": name}, {"description": description})
            for name, description in DEFAULT_ROLES
        ]
