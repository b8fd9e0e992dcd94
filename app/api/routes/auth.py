from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.deps import get_auth_service, get_client_ip, get_current_user
from app.core.config import settings
from app.core.exceptions import UnauthorizedError, ValidationError
from app.core.rate_limit import limiter, AUTH_LIMIT, REFRESH_LIMIT, PASSWORD_RESET_LIMIT
from app.core.sanitization import sanitize_email, sanitize_name, validate_email
from app.core.security import PasswordHasher
from app.models import User
from app.schemas.auth import (
    SignupRequest,
    LoginRequest,
    RefreshTokenRequest,
    LogoutRequest,
    ChangePasswordRequest,
    PasswordResetRequest,
    ResetPasswordRequest,
    AuthResponse,
    TokenResponse,
    UserResponse,
    UserProfileResponse,
    MessageResponse,
    SessionCountResponse,
)
from app.services.auth_service import AuthService


router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE_PATH = "/api/auth"


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path=REFRESH_COOKIE_PATH,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)


def _resolve_refresh_token(request: Request, body_token: Optional[str]) -> Optional[str]:
    """The cookie is authoritative; the body is read only when no cookie was sent."""
    cookie_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    return body_token or None


def _check_password_strength(password: str) -> None:
    strength = PasswordHasher.assess_strength(password)
    if not strength.valid:
        raise ValidationError("; ".join(strength.errors))


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def signup(
    request: Request,
    response: Response,
    data: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user.
    Returns an access token and sets the refresh token cookie.
    """
    email = sanitize_email(data.email)
    if not validate_email(email):
        raise ValidationError("Invalid email format")

    full_name = sanitize_name(data.full_name)
    if len(full_name) < 2:
        raise ValidationError("Full name must be at least 2 characters")

    _check_password_strength(data.password)

    result = auth_service.signup(email, data.password, full_name, ip=get_client_ip(request))
    _set_refresh_cookie(response, result.refresh_token)

    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email and password.
    Earlier sessions stay valid; each login opens a new one.
    """
    result = auth_service.login(sanitize_email(data.email), data.password, ip=get_client_ip(request))
    _set_refresh_cookie(response, result.refresh_token)

    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(REFRESH_LIMIT)
def refresh_access_token(
    request: Request,
    response: Response,
    data: Optional[RefreshTokenRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Exchange a refresh token for a new access token.
    Implements token rotation - the presented refresh token stops working.
    """
    refresh_token = _resolve_refresh_token(request, data.refresh_token if data else None)
    if not refresh_token:
        raise UnauthorizedError("Refresh token required")

    pair = auth_service.refresh(refresh_token, ip=get_client_ip(request))
    _set_refresh_cookie(response, pair.refresh_token)

    return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    data: Optional[LogoutRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke the current refresh token. Always succeeds."""
    refresh_token = _resolve_refresh_token(request, data.refresh_token if data else None)
    auth_service.logout(refresh_token, ip=get_client_ip(request))
    _clear_refresh_cookie(response)

    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke every refresh token of the current user."""
    auth_service.logout_all(current_user.id, ip=get_client_ip(request))
    _clear_refresh_cookie(response)

    return MessageResponse(message="Logged out from all devices")


@router.get("/me", response_model=UserProfileResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Get the authenticated user's profile."""
    return UserProfileResponse.model_validate(current_user)


@router.get("/sessions", response_model=SessionCountResponse)
def get_active_sessions(
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Number of live refresh tokens for the current user."""
    return SessionCountResponse(active_sessions=auth_service.active_session_count(current_user.id))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    response: Response,
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Change the current user's password.
    Requires current password verification and signs out every session.
    """
    _check_password_strength(data.new_password)

    result = auth_service.change_password(current_user.id, data.current_password, data.new_password)
    _clear_refresh_cookie(response)

    return MessageResponse(**result)


@router.post("/request-password-reset", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET_LIMIT)
def request_password_reset(
    request: Request,
    data: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Send a reset link. The response is the same whether or not the email exists."""
    result = auth_service.request_password_reset(sanitize_email(data.email), ip=get_client_ip(request))
    return MessageResponse(**result)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET_LIMIT)
def reset_password(
    request: Request,
    response: Response,
    data: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Set a new password with a reset token; all sessions are revoked."""
    _check_password_strength(data.new_password)

    result = auth_service.reset_password(data.token, data.new_password, ip=get_client_ip(request))
    _clear_refresh_cookie(response)

    return MessageResponse(**result)
