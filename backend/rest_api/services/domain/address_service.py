"""
Address Service.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from rest_api.models import Address
from rest_api.repositories import AddressRepository
from rest_api.services.base_service import BaseCRUDService


class AddressService(BaseCRUDService[Address]):
    """
    Service for address management.

    Addresses are soft deleted and can be restored.
    """

    def __init__(self, db: Session):
        super().__init__(db, AddressRepository(db))
