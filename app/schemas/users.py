"""Schemas for the user directory and the admin user-management endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.security import NAME_MAX_LEN, NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.models.user import UserRole


class UserUpsert(BaseModel):
    """
    Sparse patch applied by upsert_by_open_id.

    Only fields explicitly set on the instance are written; an explicit None clears the column.
    Password material is deliberately absent: only local registration sets it.
    """

    name: str | None = None
    email: str | None = None
    login_method: str | None = None
    role: UserRole | None = None
    last_signed_in: datetime | None = None


class UserCreate(BaseModel):
    """Admin-created local account with an explicit role."""

    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    role: UserRole = UserRole.USER

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()


class UserUpdate(BaseModel):
    """Admin edit of name, email or role; omitted fields are left unchanged."""

    name: str | None = Field(default=None, max_length=NAME_MAX_LEN)
    email: EmailStr | None = None
    role: UserRole | None = None


class UserOut(BaseModel):
    """User entry for admin views (no password material)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    open_id: str
    name: str | None = None
    email: str | None = None
    role: UserRole
    login_method: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_signed_in: datetime | None = None


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserOut]
