"""
Repository Pattern implementation.
Centralizes data access behind the models' query metadata.

Usage:
    from rest_api.repositories import get_user_repository

    repo = get_user_repository(db)
    users = repo.find_all(QueryOptions(with_=["roles"], sort=["-name"]))
    user = repo.find(123)
"""

from .base import BaseRepository, SyncResult, sanitize_ids
from .user import UserRepository, get_user_repository
from .role import RoleRepository, get_role_repository
from .address import AddressRepository, get_address_repository

__all__ = [
    # Base
    "BaseRepository",
    "SyncResult",
    "sanitize_ids",
    # User
    "UserRepository",
    "get_user_repository",
    # Role
    "RoleRepository",
    "get_role_repository",
    # Address
    "AddressRepository",
    "get_address_repository",
]
