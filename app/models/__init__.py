from app.models.user import User
from app.models.refresh_token import RefreshToken
from app.models.password_reset_token import PasswordResetToken

__all__ = [
    "User",
    "RefreshToken",
    "PasswordResetToken",
]
