from app.services.auth_service import AuthService, build_auth_service
from app.services.email_service import EmailService
from app.services.password_reset_service import PasswordResetLedger
from app.services.refresh_token_service import RefreshTokenLedger
from app.services.user_service import UserStore

__all__ = [
    "AuthService",
    "build_auth_service",
    "EmailService",
    "PasswordResetLedger",
    "RefreshTokenLedger",
    "UserStore",
]
