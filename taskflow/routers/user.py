"""User account and session API endpoints."""

import logging
import smtplib

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from taskflow.database import get_db
from taskflow.dependencies import (
    REFRESH_COOKIE_NAME,
    CurrentUser,
    clear_auth_cookies,
    get_current_user,
    set_access_cookie,
    set_refresh_cookie,
)
from taskflow.rate_limit import auth_limit, global_limit
from taskflow.schemas.base import MessageResponse
from taskflow.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    ProfileUpdateResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    UserResponse,
)
from taskflow.services.auth import get_auth_service
from taskflow.services.jwt import get_jwt_service
from taskflow.services.mail import get_mail_service

logger = logging.getLogger("taskflow")

router = APIRouter(prefix="/api/v1/user", tags=["User"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with that email, a reset link has been sent."


@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@global_limit
@auth_limit
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Create an account. Does not sign the user in."""
    get_auth_service().signup(db, body)
    return MessageResponse(message="User created successfully")


@router.post("/login", response_model=LoginResponse)
@global_limit
@auth_limit
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate and receive access/refresh cookies."""
    result = get_auth_service().login(db, body.email, body.password, remember_me=body.remember_me)

    set_access_cookie(response, result.access_token, result.access_max_age)
    set_refresh_cookie(response, result.refresh_token, result.refresh_max_age)

    return LoginResponse(message="Signed in successfully", user=UserResponse.model_validate(result.user))


@router.post("/refresh", response_model=MessageResponse)
@global_limit
def refresh(request: Request, response: Response, db: Session = Depends(get_db)) -> MessageResponse:
    """Issue a new access token from the refresh-token cookie."""
    access_token = get_auth_service().refresh(db, request.cookies.get(REFRESH_COOKIE_NAME))
    max_age = int(get_jwt_service().access_expire.total_seconds())
    set_access_cookie(response, access_token, max_age)
    return MessageResponse(message="Token refreshed")


@router.post("/logout", response_model=MessageResponse)
@global_limit
def logout(
    request: Request,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """End the session server-side and clear both cookies."""
    get_auth_service().logout(db, user.user_id)
    clear_auth_cookies(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=UserResponse)
@global_limit
def get_profile(
    request: Request, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)
) -> UserResponse:
    return UserResponse.model_validate(get_auth_service().get_profile(db, user.user_id))


@router.put("/profile", response_model=ProfileUpdateResponse)
@global_limit
def update_profile(
    request: Request,
    body: UpdateProfileRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileUpdateResponse:
    updated = get_auth_service().update_profile(db, user.user_id, body)
    return ProfileUpdateResponse(message="Profile updated successfully", user=UserResponse.model_validate(updated))


@router.post("/forgot-password", response_model=MessageResponse)
@global_limit
@auth_limit
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Request a password reset link. The response never reveals whether the account exists."""
    token = get_auth_service().request_password_reset(db, body.email)

    if token:
        try:
            get_mail_service().send_password_reset(body.email, token)
        except (smtplib.SMTPException, OSError):
            logger.exception("Password reset email delivery failed")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{token}", response_model=MessageResponse)
@global_limit
@auth_limit
def reset_password(
    request: Request, token: str, body: ResetPasswordRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """Set a new password using an emailed reset token."""
    get_auth_service().reset_password(db, token, body.password)
    return MessageResponse(message="Password reset successful!")
