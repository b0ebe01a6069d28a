"""Authentication dependencies and session cookie helpers."""

from dataclasses import dataclass

from fastapi import Request, Response

from taskflow.config import get_settings
from taskflow.errors import TokenExpired, Unauthenticated
from taskflow.services.jwt import TokenExpiredError, TokenError, get_jwt_service

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"
ACCESS_COOKIE_PATH = "/"
REFRESH_COOKIE_PATH = "/api/v1/user/refresh"


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int


def get_current_user(request: Request) -> CurrentUser:
    """Validate the access-token cookie and attach the user id to the request.

    Read-only gate: never issues or rotates tokens. An expired token is reported
    with code TOKEN_EXPIRED so clients can attempt a silent refresh.
    """
    token = request.cookies.get(ACCESS_COOKIE_NAME)
    if not token:
        raise Unauthenticated("No token, authorization denied")

    jwt_service = get_jwt_service()
    try:
        payload = jwt_service.verify_access_token(token)
    except TokenExpiredError:
        raise TokenExpired() from None
    except TokenError:
        raise Unauthenticated("Token is not valid") from None

    request.state.user_id = payload.user_id
    return CurrentUser(user_id=payload.user_id)


def set_access_cookie(response: Response, token: str, max_age: int) -> None:
    settings = get_settings()
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=token,
        max_age=max_age,
        path=ACCESS_COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def set_refresh_cookie(response: Response, token: str, max_age: int) -> None:
    """Refresh cookie is scoped to the refresh endpoint so browsers send it nowhere else."""
    settings = get_settings()
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        max_age=max_age,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def clear_auth_cookies(response: Response) -> None:
    """Clear both session cookies."""
    settings = get_settings()
    response.delete_cookie(
        key=ACCESS_COOKIE_NAME, path=ACCESS_COOKIE_PATH, httponly=True, secure=settings.cookie_secure, samesite="strict"
    )
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
