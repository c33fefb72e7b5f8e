"""
Admin API router - combines all admin sub-routers.

- users: User CRUD, role sync and inline address creation
- roles: Role CRUD and member sync
- addresses: Address CRUD with soft delete and restore

All routes are prefixed with /api
"""

from fastapi import APIRouter

from .users import router as users_router
from .roles import router as roles_router
from .addresses import router as addresses_router


# Create the main admin router
router = APIRouter()

router.include_router(users_router)
router.include_router(roles_router)
router.include_router(addresses_router)

__all__ = ["router"]
