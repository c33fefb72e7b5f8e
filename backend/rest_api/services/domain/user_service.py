"""
User Service.

Usage:
    from rest_api.services.domain import UserService

    service = UserService(db)
    user = service.create({"name": "Ana", "email": "ana@example.com",
                           "password": "secret123", "role_ids": [1]})
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.repositories import UserRepository
from rest_api.services.base_service import BaseCRUDService
from shared.config.logging import get_logger, mask_email

logger = get_logger(__name__)


class UserService(BaseCRUDService[User]):
    """
    Service for user management.

    Business rules:
    - Passwords are hashed by the model on assignment
    - ``role_ids`` replaces the user's roles
    - ``addresses`` creates new addresses owned by the user
    - A user that still owns addresses cannot be deleted
    """

    def __init__(self, db: Session):
        super().__init__(db, UserRepository(db))

    def ensure_user(
        self,
        email: str,
        request: Mapping[str, Any],
    ) -> User:
        """Create or update the user with this email (used by seeding)."""
        return self.update_or_create({"email": email}, request)

    def _after_create(self, entity: User) -> None:
        logger.info("User account created", user_id=entity.id, email=mask_email(entity.email))
