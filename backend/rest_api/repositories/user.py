"""
User Repository - Data access for users.
"""

from sqlalchemy.orm import Session

from rest_api.models import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User entities. Roles sync through the role_user pivot."""

    model = User


def get_user_repository(db: Session) -> UserRepository:
    """Factory function for dependency injection."""
    return UserRepository(db)
