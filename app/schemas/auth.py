"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)
from app.models.user import UserRole


class RegisterRequest(BaseModel):
    """Input for local registration and first-admin bootstrap."""

    email: EmailStr = Field(..., description="Email address used to log in")
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )
    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN, description="Display name")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()


class LoginRequest(BaseModel):
    """Credentials for local login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class AckResponse(BaseModel):
    """Acknowledgment for auth actions; the session travels in the cookie."""

    success: bool = True
    message: str


class Principal(BaseModel):
    """Authenticated user attached to a request after the access gate."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    open_id: str
    name: str | None = None
    email: str | None = None
    role: UserRole
    login_method: str | None = None


class PrincipalOut(BaseModel):
    """Public view of the principal (no open_id)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    email: str | None = None
    role: UserRole
    login_method: str | None = None


class WhoAmIResponse(BaseModel):
    """Response for GET /auth/me; user is null for anonymous requests."""

    authenticated: bool
    user: PrincipalOut | None = None


class ExternalIdentity(BaseModel):
    """Identity attributes asserted by the external sign-on provider."""

    open_id: str = Field(..., min_length=1, max_length=64)
    name: str | None = None
    email: str | None = None
