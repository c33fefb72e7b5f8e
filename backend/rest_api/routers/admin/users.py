"""
User management endpoints.
"""

from rest_api.models import User
from rest_api.routers.admin._base import build_crud_router
from rest_api.routers.admin_schemas import UserCreate, UserOutput, UserUpdate
from rest_api.services.domain import UserService


router = build_crud_router(
    "users",
    User,
    UserService,
    create_schema=UserCreate,
    update_schema=UserUpdate,
    output_schema=UserOutput,
)
