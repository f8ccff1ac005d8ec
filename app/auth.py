"""Session cookie binding and the authentication dependency.

The cookie carries a signed token from :mod:`app.services.tokens`; nothing
is stored server-side, so logging out only overwrites the cookie.
"""

from fastapi import HTTPException, Request, Response, status

from app.config import Settings
from app.services.tokens import TokenClaims, TokenService


def set_auth_cookie(
    response: Response,
    token_service: TokenService,
    app_settings: Settings,
    subject_id: int,
    subject_name: str,
) -> str:
    """Issue a token for the admin and attach it to the response."""
    token = token_service.issue(subject_id, subject_name)
    response.set_cookie(
        key=app_settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=app_settings.AUTH_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=app_settings.secure_cookies,
    )
    return token


def clear_auth_cookie(response: Response, app_settings: Settings) -> None:
    """Overwrite the auth cookie with an immediately expiring empty value."""
    response.set_cookie(
        key=app_settings.AUTH_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        samesite="lax",
        secure=app_settings.secure_cookies,
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user(request: Request) -> TokenClaims:
    """Dependency returning the claims of a valid session cookie.

    Raises:
        HTTPException: 401 when the cookie is missing, tampered or expired.
    """
    app_settings = get_settings(request)
    token = request.cookies.get(app_settings.AUTH_COOKIE_NAME)
    claims = get_token_service(request).verify(token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return claims
