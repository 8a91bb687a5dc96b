"""External sign-on provider client: exchange an authorization code for the user's identity."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from app.schemas.auth import ExternalIdentity

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/token"
USERINFO_PATH = "/oauth/userinfo"


class OAuthNotConfiguredError(Exception):
    """Raised when the callback is hit but provider settings are missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class OAuthProviderError(Exception):
    """Raised when the provider is unreachable or answers with an error or bad payload."""

    def __init__(self, message: str, status_code: int | None = None, unreachable: bool = False) -> None:
        self.message = message
        self.status_code = status_code
        self.unreachable = unreachable
        super().__init__(message)


def is_oauth_configured(settings: Settings) -> bool:
    if not settings.OAUTH_SERVER_URL:
        return False
    if not settings.OAUTH_CLIENT_ID or not settings.OAUTH_CLIENT_ID.strip():
        return False
    if settings.OAUTH_CLIENT_SECRET is None or not settings.OAUTH_CLIENT_SECRET.get_secret_value().strip():
        return False
    return bool(settings.OAUTH_REDIRECT_URI and settings.OAUTH_REDIRECT_URI.strip())


def _json_or_error(resp: httpx.Response, what: str) -> dict[str, Any]:
    if resp.status_code >= 400:
        raise OAuthProviderError(
            f"Provider returned {resp.status_code} for {what}", status_code=resp.status_code
        )
    try:
        data = resp.json()
    except ValueError as e:
        raise OAuthProviderError(f"Provider {what} response is not JSON") from e
    if not isinstance(data, dict):
        raise OAuthProviderError(f"Provider {what} response is not an object")
    return data


def identity_from_userinfo(data: dict[str, Any]) -> ExternalIdentity:
    """Map a userinfo payload (openId or sub, name, email) to an ExternalIdentity."""
    open_id = data.get("openId") or data.get("sub")
    if not isinstance(open_id, str) or not open_id.strip():
        raise OAuthProviderError("Provider userinfo is missing the user identifier")
    name = data.get("name")
    email = data.get("email")
    try:
        return ExternalIdentity(
            open_id=open_id.strip(),
            name=name if isinstance(name, str) and name.strip() else None,
            email=email if isinstance(email, str) and email.strip() else None,
        )
    except ValidationError as e:
        raise OAuthProviderError("Provider userinfo is invalid") from e


async def exchange_code_for_identity(
    code: str,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ExternalIdentity:
    """
    Run the authorization-code exchange and fetch the signed-in user's identity.

    Raises OAuthNotConfiguredError if provider settings are missing, OAuthProviderError
    on connection failure, timeout, error status, or malformed payload.
    """
    if not is_oauth_configured(settings):
        raise OAuthNotConfiguredError(
            "External sign-on is not configured; set OAUTH_SERVER_URL, OAUTH_CLIENT_ID, "
            "OAUTH_CLIENT_SECRET, OAUTH_REDIRECT_URI."
        )
    base_url = (settings.OAUTH_SERVER_URL or "").rstrip("/")
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.OAUTH_REDIRECT_URI,
        "client_id": settings.OAUTH_CLIENT_ID,
        "client_secret": settings.OAUTH_CLIENT_SECRET.get_secret_value(),
    }
    timeout = httpx.Timeout(settings.OAUTH_REQUEST_TIMEOUT_SEC)

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            token_resp = await client.post(f"{base_url}{TOKEN_PATH}", data=form)
            token_data = _json_or_error(token_resp, "token")
            access_token = token_data.get("access_token") or token_data.get("accessToken")
            if not isinstance(access_token, str) or not access_token:
                raise OAuthProviderError("Provider token response is missing access_token")
            info_resp = await client.get(
                f"{base_url}{USERINFO_PATH}",
                headers={"Authorization": f"Bearer {access_token}"},
            )
            info = _json_or_error(info_resp, "userinfo")
    except httpx.ConnectError as e:
        logger.error("OAuth provider unreachable: %s", e)
        raise OAuthProviderError(
            "Sign-on provider is unreachable. Check OAUTH_SERVER_URL.", unreachable=True
        ) from e
    except httpx.TimeoutException as e:
        logger.error("OAuth provider timed out: %s", e)
        raise OAuthProviderError(
            "Sign-on provider request timed out.", unreachable=True
        ) from e
    except httpx.HTTPError as e:
        logger.error("OAuth provider request failed: %s", e)
        raise OAuthProviderError(f"Sign-on provider request failed: {e}") from e

    return identity_from_userinfo(info)
