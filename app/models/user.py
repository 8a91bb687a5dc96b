"""ORM model for site users (local accounts and external-provider identities)."""

from enum import StrEnum

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class UserRole(StrEnum):
    """Roles in increasing order of privilege."""

    USER = "user"
    CONTENT_EDITOR = "content_editor"
    ADMIN = "admin"


class LoginMethod(StrEnum):
    """Origin of the identity; only LOCAL rows carry password material."""

    EXTERNAL = "external"
    LOCAL = "local"


class User(Base):
    """
    One row per open_id, whatever the identity's origin.

    password_hash and password_salt are set together or not at all.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(password_hash IS NULL) = (password_salt IS NULL)",
            name="password_material",
        ),
        CheckConstraint(
            "role IN ('user', 'content_editor', 'admin')",
            name="role",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    open_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(Text, nullable=True)
    email = Column(String(320), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    password_salt = Column(String(255), nullable=True)
    login_method = Column(String(64), nullable=True)
    role = Column(String(32), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    last_signed_in = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash) and bool(self.password_salt)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, open_id={self.open_id}, role={self.role})>"
