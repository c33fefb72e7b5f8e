"""
Role management endpoints.
"""

from rest_api.models import Role
from rest_api.routers.admin._base import build_crud_router
from rest_api.routers.admin_schemas import RoleCreate, RoleOutput, RoleUpdate
from rest_api.services.domain import RoleService


router = build_crud_router(
    "roles",
    Role,
    RoleService,
    create_schema=RoleCreate,
    update_schema=RoleUpdate,
    output_schema=RoleOutput,
)
