"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AckResponse,
    ExternalIdentity,
    LoginRequest,
    Principal,
    PrincipalOut,
    RegisterRequest,
    WhoAmIResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.users import (
    UserCreate,
    UserOut,
    UsersListResponse,
    UserUpdate,
    UserUpsert,
)

__all__ = [
    "AckResponse",
    "ExternalIdentity",
    "HealthResponse",
    "LoginRequest",
    "Principal",
    "PrincipalOut",
    "RegisterRequest",
    "UserCreate",
    "UserOut",
    "UserUpdate",
    "UserUpsert",
    "UsersListResponse",
    "WhoAmIResponse",
]
