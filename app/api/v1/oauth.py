"""External sign-on callback: reconcile the provider identity and start a session."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from app.api.v1.dependencies import AppSettings, DbSession
from app.core.cookies import set_session_cookie
from app.core.security import create_session_token
from app.services.identity import reconcile_external_identity
from app.services.oauth_provider import (
    OAuthNotConfiguredError,
    OAuthProviderError,
    exchange_code_for_identity,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/callback")
async def oauth_callback(
    request: Request,
    db: DbSession,
    settings: AppSettings,
    code: str = Query(..., min_length=1, max_length=2048),
) -> RedirectResponse:
    """
    Exchange the authorization code, upsert the user, set the session cookie and
    redirect to the site root.
    """
    try:
        identity = await exchange_code_for_identity(code, settings)
    except OAuthNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except OAuthProviderError as e:
        logger.error(
            "OAuth callback failed",
            extra={"status_code": e.status_code, "reason": e.message[:200]},
        )
        raise HTTPException(status_code=503 if e.unreachable else 502, detail=e.message) from e

    user = reconcile_external_identity(db, settings, identity)
    token = create_session_token(
        settings, user.open_id, name=user.name, login_method=user.login_method
    )
    response = RedirectResponse(url="/", status_code=302)
    set_session_cookie(response, request, settings, token)
    return response
