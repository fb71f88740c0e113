import logging
from typing import Dict, Any

from fastapi import APIRouter, Depends

from globetrotter.config import settings
from globetrotter.dependencies import get_auth_service, get_current_user
from globetrotter.models.user import (
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SessionResponse,
    SignupRequest,
)
from globetrotter.responses import ok
from globetrotter.services.auth_service import AuthService, GENERIC_FORGOT_MESSAGE, public_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", status_code=201, response_model=SessionResponse)
def signup(body: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    session = auth.signup(body.name, body.email, body.password)
    return ok(session, "User registered successfully")


@router.post("/login", response_model=SessionResponse)
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    return ok(auth.login(body.email, body.password), "Login successful")


@router.post("/refresh", response_model=SessionResponse)
def refresh(body: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new access/refresh pair; the old one stops working."""
    return ok(auth.refresh(body.refreshToken), "Token refreshed successfully")


@router.post("/logout")
def logout(
    body: LogoutRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    auth.logout(user, body.refreshToken)
    return ok(None, "Logout successful")


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    raw_token = auth.forgot_password(body.email)
    data = None
    # Email delivery is not wired up; local setups can opt in to seeing the token.
    if raw_token and settings.expose_reset_token:
        logger.warning("Returning password reset token in response (expose_reset_token is on)")
        data = {"resetToken": raw_token}
    return ok(data, GENERIC_FORGOT_MESSAGE)


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(body.token, body.password)
    return ok(None, "Password reset successful")


@router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user)):
    return ok({"user": public_user(user)})
