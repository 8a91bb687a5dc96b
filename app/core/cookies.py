"""Session cookie transport: set on authentication, cleared on logout."""

from fastapi import Request, Response

from app.core.config import Settings
from app.core.security import session_ttl


def _secure(request: Request, settings: Settings) -> bool:
    if settings.APP_ENV == "prod":
        return True
    forwarded = request.headers.get("x-forwarded-proto", "")
    return request.url.scheme == "https" or forwarded.split(",")[0].strip() == "https"


def set_session_cookie(
    response: Response, request: Request, settings: Settings, token: str
) -> None:
    """Attach the session token as an HttpOnly, same-site cookie living as long as the token."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=int(session_ttl(settings).total_seconds()),
        path="/",
        httponly=True,
        secure=_secure(request, settings),
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response, request: Request, settings: Settings) -> None:
    """Expire the session cookie with the same name and scope it was set with."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=_secure(request, settings),
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )
