"""
Address management endpoints.

Addresses are soft deleted, so they also get a restore endpoint.
"""

from rest_api.models import Address
from rest_api.routers.admin._base import build_crud_router
from rest_api.routers.admin_schemas import AddressCreate, AddressOutput, AddressUpdate
from rest_api.services.domain import AddressService


router = build_crud_router(
    "addresses",
    Address,
    AddressService,
    create_schema=AddressCreate,
    update_schema=AddressUpdate,
    output_schema=AddressOutput,
    restorable=True,
)
