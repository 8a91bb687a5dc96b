"""Local email/password auth, first-admin bootstrap, logout and who-am-I."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.v1.dependencies import (
    AppSettings,
    DbSession,
    OptionalPrincipal,
    local_auth_enabled,
)
from app.core.cookies import clear_session_cookie, set_session_cookie
from app.core.security import create_session_token
from app.models.user import User
from app.schemas.auth import (
    AckResponse,
    LoginRequest,
    PrincipalOut,
    RegisterRequest,
    WhoAmIResponse,
)
from app.services.bootstrap import bootstrap_first_admin
from app.services.identity import authenticate_local, register_local_user

router = APIRouter()

LocalAuth = Annotated[None, Depends(local_auth_enabled)]


def _start_session(response: Response, request: Request, settings: AppSettings, user: User) -> None:
    """Issue a fresh session bound to the user's open_id (not the email)."""
    token = create_session_token(
        settings, user.open_id, name=user.name, login_method=user.login_method
    )
    set_session_cookie(response, request, settings, token)


@router.post("/register", response_model=AckResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: DbSession,
    settings: AppSettings,
    _enabled: LocalAuth,
) -> AckResponse:
    """
    Register a local account with role user and sign it in.
    409 if the email is already registered.
    """
    user = register_local_user(db, settings, body)
    _start_session(response, request, settings, user)
    return AckResponse(message="User registered successfully")


@router.post("/login", response_model=AckResponse)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: DbSession,
    settings: AppSettings,
    _enabled: LocalAuth,
) -> AckResponse:
    """Authenticate with email and password; the session is returned as an HttpOnly cookie."""
    user = authenticate_local(db, settings, str(body.email), body.password)
    _start_session(response, request, settings, user)
    return AckResponse(message="Login successful")


@router.post("/bootstrap", response_model=AckResponse, status_code=status.HTTP_201_CREATED)
def bootstrap(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: DbSession,
    settings: AppSettings,
    _enabled: LocalAuth,
) -> AckResponse:
    """Create the first admin while no user exists; 409 afterwards."""
    user = bootstrap_first_admin(db, settings, body)
    _start_session(response, request, settings, user)
    return AckResponse(message="Admin user created successfully")


@router.post("/logout", response_model=AckResponse)
def logout(request: Request, response: Response, settings: AppSettings) -> AckResponse:
    """Tell the client to drop the session cookie. Always succeeds."""
    clear_session_cookie(response, request, settings)
    return AckResponse(message="Logged out")


@router.get("/me", response_model=WhoAmIResponse)
def me(principal: OptionalPrincipal) -> WhoAmIResponse:
    """Return the signed-in user, or authenticated=false for anonymous requests."""
    if principal is None:
        return WhoAmIResponse(authenticated=False, user=None)
    return WhoAmIResponse(
        authenticated=True,
        user=PrincipalOut.model_validate(principal.model_dump()),
    )
