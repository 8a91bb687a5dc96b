"""
Identity reconciliation: turn a verified session or a local credential check into an
up-to-date user row.

Two origins share one users table. External-provider identities are upserted from the
attributes the provider asserts and never receive password material; local accounts are
created by registration with a synthesized open_id in the local namespace.
"""

import logging
import secrets
from datetime import UTC, datetime
from functools import lru_cache

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.security import (
    SessionClaims,
    generate_local_open_id,
    hash_password,
    is_local_open_id,
    verify_password,
)
from app.models.user import LoginMethod, User, UserRole
from app.schemas.auth import ExternalIdentity, RegisterRequest
from app.schemas.users import UserUpsert
from app.services.exceptions import ForbiddenError, UnauthorizedError
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

# One message for every local-login failure so callers cannot tell which emails exist.
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


@lru_cache(maxsize=1)
def _dummy_credentials() -> tuple[str, str]:
    """Digest and salt of a throwaway password, checked against on unknown emails."""
    return hash_password(secrets.token_urlsafe(16))


def ensure_local_auth_enabled(settings: Settings) -> None:
    if not settings.LOCAL_AUTH_ENABLED:
        raise ForbiddenError("Local authentication is disabled", code="LOCAL_AUTH_DISABLED")


def reconcile_external_identity(
    db: Session, settings: Settings, identity: ExternalIdentity
) -> User:
    """
    Upsert a provider-asserted identity and refresh last_signed_in.

    The provider may not claim an open_id in the local namespace, and an email that
    already belongs to another row is not written (identities are never merged).
    """
    if is_local_open_id(identity.open_id):
        logger.warning("Rejected external identity in the local open_id namespace")
        raise UnauthorizedError("Invalid identity", code="INVALID_IDENTITY")

    directory = UserDirectory(db, settings)
    fields: dict[str, object] = {
        "name": identity.name,
        "login_method": LoginMethod.EXTERNAL.value,
        "last_signed_in": datetime.now(UTC),
    }
    if identity.email:
        holder = directory.find_by_email(identity.email)
        if holder is None or holder.open_id == identity.open_id:
            fields["email"] = identity.email
        else:
            logger.warning(
                "External identity email already held by another user; not synced",
                extra={"user_id": holder.id},
            )
    user = directory.upsert_by_open_id(identity.open_id, UserUpsert(**fields))
    logger.info("External sign-in", extra={"user_id": user.id, "role": user.role})
    return user


def resolve_session(db: Session, settings: Settings, claims: SessionClaims) -> User | None:
    """
    Load the user behind a verified session token, or None when there is none.

    A missing row is re-provisioned only for external-provider sessions, from the
    attributes carried in the token; a deleted local account stays deleted.
    """
    directory = UserDirectory(db, settings)
    user = directory.find_by_open_id(claims.open_id)
    if user is None:
        is_external = (
            claims.login_method == LoginMethod.EXTERNAL.value
            and not is_local_open_id(claims.open_id)
        )
        if not is_external:
            logger.info("Session refers to a user that no longer exists")
            return None
        return directory.upsert_by_open_id(
            claims.open_id,
            UserUpsert(
                name=claims.name,
                login_method=LoginMethod.EXTERNAL.value,
                last_signed_in=datetime.now(UTC),
            ),
        )
    directory.touch_last_signed_in(user.open_id)
    return user


def authenticate_local(db: Session, settings: Settings, email: str, password: str) -> User:
    """
    Check an email/password pair.

    Raises UnauthorizedError with the same message for an unknown email, an account
    without password material, and a wrong password.
    """
    directory = UserDirectory(db, settings)
    user = directory.find_by_email(email)
    if user is None or not user.has_password:
        # Unknown emails pay the same PBKDF2 cost as a real check.
        verify_password(password, *_dummy_credentials())
        logger.info("Local login failed", extra={"reason": "unknown_or_passwordless"})
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")
    if not verify_password(password, user.password_hash, user.password_salt):
        logger.info("Local login failed", extra={"reason": "bad_password", "user_id": user.id})
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")
    directory.touch_last_signed_in(user.open_id)
    logger.info("Local login succeeded", extra={"user_id": user.id})
    return user


def register_local_user(
    db: Session,
    settings: Settings,
    data: RegisterRequest,
    role: UserRole = UserRole.USER,
) -> User:
    """Create a local account; ConflictError when the email is already registered."""
    digest, salt = hash_password(data.password)
    user = UserDirectory(db, settings).create(
        open_id=generate_local_open_id(),
        email=str(data.email),
        name=data.name,
        password_hash=digest,
        password_salt=salt,
        role=role,
        login_method=LoginMethod.LOCAL,
    )
    logger.info("Registered local user", extra={"user_id": user.id, "role": user.role})
    return user
