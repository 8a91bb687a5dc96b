"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.user import LoginMethod, User, UserRole

__all__ = ["Base", "LoginMethod", "User", "UserRole"]
