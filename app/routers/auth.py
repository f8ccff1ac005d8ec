"""Login, logout and session endpoints.

A successful login sets the signed session cookie; logout overwrites it with
an expired empty value.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.auth import (
    clear_auth_cookie,
    get_current_user,
    get_settings,
    get_token_service,
    set_auth_cookie,
)
from app.config import Settings
from app.database import get_db
from app.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    StatusResponse,
    UserInfo,
)
from app.services.credentials import verify_admin_credentials
from app.services.tokens import TokenClaims, TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


async def read_login_request(request: Request) -> LoginRequest:
    """Parse the login body; an unreadable body counts as empty credentials."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    return LoginRequest.model_validate(body if isinstance(body, dict) else {})


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Sign in as an admin",
    description=(
        "Verify admin credentials and set an HTTP-only session cookie "
        "valid for 24 hours."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing or malformed credentials"},
        401: {"model": ErrorResponse, "description": "Wrong username or password"},
        500: {"model": ErrorResponse, "description": "Unexpected server error"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": LoginRequest.model_json_schema()}},
        }
    },
)
def login(
    response: Response,
    payload: LoginRequest = Depends(read_login_request),
    db: Session = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    token_service: TokenService = Depends(get_token_service),
) -> LoginResponse:
    """Authenticate an admin and start a cookie session."""
    username = payload.username.strip()
    password = payload.password
    if not username or not password:
        raise HTTPException(
            status_code=400,
            detail="Username and password are required.",
        )

    try:
        user = verify_admin_credentials(db, username, password)
    except Exception as e:
        logger.error("Login failed with an unexpected error: %s", e)
        raise HTTPException(
            status_code=500,
            detail="An unexpected server error occurred.",
        )

    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid username or password.",
        )

    set_auth_cookie(response, token_service, app_settings, user.id, user.username)
    logger.info("Admin %r signed in", user.username)
    return LoginResponse(user=UserInfo(id=user.id, username=user.username))


@router.delete(
    "/login",
    response_model=StatusResponse,
    summary="Sign out (alias of POST /api/logout)",
)
def login_delete(
    response: Response, app_settings: Settings = Depends(get_settings)
) -> StatusResponse:
    clear_auth_cookie(response, app_settings)
    return StatusResponse()


@router.post(
    "/logout",
    response_model=StatusResponse,
    summary="Sign out",
    description="Clear the session cookie. Succeeds even without a session.",
)
def logout(
    response: Response, app_settings: Settings = Depends(get_settings)
) -> StatusResponse:
    """Clear the session cookie."""
    clear_auth_cookie(response, app_settings)
    return StatusResponse()


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session",
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
def current_session(claims: TokenClaims = Depends(get_current_user)) -> SessionResponse:
    """Return the admin identified by the session cookie."""
    return SessionResponse(
        user=UserInfo(id=claims.subject_id, username=claims.subject_name),
        expires_at=claims.expires_at,
    )
