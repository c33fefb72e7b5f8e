"""
Address Repository - Data access for addresses.

Addresses are soft deleted: delete() only flags them and restore() brings
them back.
"""

from sqlalchemy.orm import Session

from rest_api.models import Address
from .base import BaseRepository


class AddressRepository(BaseRepository[Address]):
    """Repository for Address entities."""

    model = Address


def get_address_repository(db: Session) -> AddressRepository:
    """Factory function for dependency injection."""
    return AddressRepository(db)
