"""
Domain Services.

Services orchestrate operations: they use Repositories for data access and
own the transaction of every write.

Structure:
    Router (thin controller)
        ↓
    Service (orchestration)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import RoleService

    # In router
    service = RoleService(db)
    roles = service.index({"withCount": "users"})
"""

from .user_service import UserService
from .role_service import RoleService, DEFAULT_ROLES
from .address_service import AddressService

__all__ = [
    "UserService",
    "RoleService",
    "DEFAULT_ROLES",
    "AddressService",
]
