"""First-admin seeding: allowed exactly once, while the users table is empty."""

import logging

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.user import User, UserRole
from app.schemas.auth import RegisterRequest
from app.services.exceptions import ConflictError
from app.services.identity import register_local_user
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def bootstrap_first_admin(db: Session, settings: Settings, data: RegisterRequest) -> User:
    """
    Create the first account with role admin.

    The emptiness check and the insert run in one transaction; on PostgreSQL the users
    table is locked for its duration so concurrent attempts cannot both pass the check.
    Raises ConflictError once any user exists, whatever its role.
    """
    directory = UserDirectory(db, settings)
    try:
        directory.lock_table()
        existing = directory.count()
        if existing > 0:
            raise ConflictError("Admin user already exists", code="ALREADY_BOOTSTRAPPED")
        user = register_local_user(db, settings, data, role=UserRole.ADMIN)
    except Exception:
        db.rollback()
        raise
    logger.info("Bootstrapped first admin", extra={"user_id": user.id})
    return user
