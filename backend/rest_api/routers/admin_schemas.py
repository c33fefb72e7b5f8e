"""
Pydantic schemas for the admin CRUD endpoints.

Create/Update schemas hold the accepted body fields; anything else sent by
the client is ignored. Output schemas declare every field that may leave
the API: relations and counts are optional and only appear when loaded.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)

from shared.config.constants import Limits

PASSWORD_MISMATCH = "The password field confirmation does not match."

NameStr = Annotated[str, Field(min_length=1, max_length=Limits.NAME_MAX_LENGTH)]
PostalCodeStr = Annotated[str, Field(min_length=1, max_length=Limits.POSTAL_CODE_MAX_LENGTH)]
PasswordStr = Annotated[str, Field(min_length=Limits.PASSWORD_MIN_LENGTH)]


def as_utc(value: datetime) -> datetime:
    """Naive values (SQLite drops the offset) are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def check_password_confirmation(value: Optional[str], info: ValidationInfo) -> Optional[str]:
    """The confirmation must repeat the password whenever one is sent."""
    password = info.data.get("password")
    if password is not None and value != password:
        raise ValueError(PASSWORD_MISMATCH)
    return value


# =============================================================================
# Address Schemas
# =============================================================================


class AddressInline(BaseModel):
    """Address created together with its user."""

    name: NameStr
    street: NameStr
    city: NameStr
    state: NameStr
    postal_code: PostalCodeStr
    country: NameStr


class AddressCreate(AddressInline):
    user_id: int = Field(gt=0)


class AddressUpdate(BaseModel):
    user_id: int | None = Field(default=None, gt=0)
    name: NameStr | None = None
    street: NameStr | None = None
    city: NameStr | None = None
    state: NameStr | None = None
    postal_code: PostalCodeStr | None = None
    country: NameStr | None = None


class AddressOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
    user: Optional["UserOutput"] = None


# =============================================================================
# Role Schemas
# =============================================================================


class RoleCreate(BaseModel):
    name: NameStr
    description: str | None = Field(default=None, max_length=Limits.NAME_MAX_LENGTH)
    user_ids: list[int] | None = None


class RoleUpdate(BaseModel):
    name: NameStr | None = None
    description: str | None = Field(default=None, max_length=Limits.NAME_MAX_LENGTH)
    user_ids: list[int] | None = None


class RoleOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
    users: list["UserOutput"] | None = None
    users_count: int | None = None


# =============================================================================
# User Schemas
# =============================================================================


class UserCreate(BaseModel):
    name: NameStr
    email: EmailStr
    password: PasswordStr
    password_confirmation: str
    role_ids: list[int] | None = None
    addresses: list[AddressInline] | None = None

    @field_validator("password_confirmation")
    @classmethod
    def confirm_password(cls, value: str, info: ValidationInfo) -> str:
        return check_password_confirmation(value, info)


class UserUpdate(BaseModel):
    """Addresses are managed through their own endpoints once the user exists."""

    name: NameStr | None = None
    email: EmailStr | None = None
    password: PasswordStr | None = None
    # Validated even when omitted so a new password always needs its confirmation
    password_confirmation: str | None = Field(default=None, validate_default=True)
    role_ids: list[int] | None = None

    @field_validator("password_confirmation")
    @classmethod
    def confirm_password(cls, value: str | None, info: ValidationInfo) -> str | None:
        return check_password_confirmation(value, info)


class UserOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
    roles: list[RoleOutput] | None = None
    addresses: list[AddressOutput] | None = None
    roles_count: int | None = None
    addresses_count: int | None = None


AddressOutput.model_rebuild()
RoleOutput.model_rebuild()
UserOutput.model_rebuild()


# =============================================================================
# Bulk Operations
# =============================================================================


class BulkDeleteRequest(BaseModel):
    """Ids that are not positive integers are dropped before deleting."""

    ids: list[Any] = Field(default_factory=list)
