"""
Access control gate as a chain of FastAPI dependencies.

get_optional_principal (anonymous) <- require_authenticated <- require_content_operator
<- require_owner. A route declares the lowest tier it needs and inherits every check
below it; rejections happen before the route body runs.
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import verify_session_token
from app.schemas.auth import Principal
from app.services.access_control import Tier, check_tier
from app.services.identity import ensure_local_auth_enabled, resolve_session

bearer = HTTPBearer(auto_error=False)

DbSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_optional_principal(
    request: Request,
    db: DbSession,
    settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
) -> Principal | None:
    """Resolve the session cookie (or Bearer token) to a principal; None means anonymous."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    claims = verify_session_token(settings, token)
    if claims is None:
        return None
    user = resolve_session(db, settings, claims)
    if user is None:
        return None
    return Principal.model_validate(user)


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


def require_authenticated(principal: OptionalPrincipal) -> Principal:
    """Dependency: valid session for an existing user, else 401."""
    return check_tier(principal, Tier.AUTHENTICATED)


def require_content_operator(
    principal: Annotated[Principal, Depends(require_authenticated)],
) -> Principal:
    """Dependency: role content_editor or admin, else 403."""
    return check_tier(principal, Tier.CONTENT_OPERATOR)


def require_owner(
    principal: Annotated[Principal, Depends(require_content_operator)],
) -> Principal:
    """Dependency: role admin, else 403."""
    return check_tier(principal, Tier.OWNER)


TIER_DEPENDENCIES: dict[Tier, Callable[..., Principal | None]] = {
    Tier.ANONYMOUS: get_optional_principal,
    Tier.AUTHENTICATED: require_authenticated,
    Tier.CONTENT_OPERATOR: require_content_operator,
    Tier.OWNER: require_owner,
}


def require_tier(tier: Tier) -> Callable[..., Principal | None]:
    """Return the dependency guarding the given tier, for use as Depends(require_tier(...))."""
    return TIER_DEPENDENCIES[tier]


CurrentPrincipal = Annotated[Principal, Depends(require_authenticated)]
ContentOperator = Annotated[Principal, Depends(require_content_operator)]
Owner = Annotated[Principal, Depends(require_owner)]


def local_auth_enabled(settings: AppSettings) -> None:
    """Dependency: refuse local email/password routes when LOCAL_AUTH_ENABLED is false."""
    ensure_local_auth_enabled(settings)

