import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.security import PasswordHasher, TokenSigner
from app.models import User
from app.services.email_service import EmailService
from app.services.password_reset_service import PasswordResetLedger
from app.services.refresh_token_service import RefreshTokenLedger
from app.services.user_service import UserStore, normalize_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
INVALID_REFRESH_MESSAGE = "Invalid or expired refresh token"
PASSWORD_RESET_REQUESTED_MESSAGE = "If the email exists, a reset link will be sent"


@dataclass
class AuthResult:
    user: User
    access_token: str
    refresh_token: str


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


class AuthService:
    """
    Session lifecycle: signup, login, refresh, logout and password reset.

    This is the only place that decides what a caller is told, so account
    enumeration rules (uniform login failures, uniform reset-request
    answers) live here rather than in the HTTP layer.
    """

    def __init__(
        self,
        db: Session,
        users: UserStore,
        hasher: PasswordHasher,
        signer: TokenSigner,
        refresh_tokens: RefreshTokenLedger,
        password_resets: PasswordResetLedger,
        email_service: EmailService,
        revoke_attempts: int = 3,
    ):
        self.db = db
        self.users = users
        self.hasher = hasher
        self.signer = signer
        self.refresh_tokens = refresh_tokens
        self.password_resets = password_resets
        self.email_service = email_service
        self.revoke_attempts = max(1, revoke_attempts)

    def _issue_access_token(self, user: User) -> str:
        return self.signer.issue(user_id=str(user.id), email=user.email, role=user.role)

    def _start_session(self, user: User, ip: Optional[str]) -> AuthResult:
        access_token = self._issue_access_token(user)
        refresh_token = self.refresh_tokens.generate()
        self.refresh_tokens.store(user.id, refresh_token, ip)
        return AuthResult(user=user, access_token=access_token, refresh_token=refresh_token)

    def signup(self, email: str, password: str, full_name: str, ip: Optional[str] = None) -> AuthResult:
        """Register a new user and start their first session."""
        email = normalize_email(email)
        if self.users.email_exists(email):
            raise ConflictError("Email already registered")

        password_hash = self.hasher.hash(password)

        try:
            user = self.users.create(email=email, password_hash=password_hash, full_name=full_name)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            self.db.rollback()
            raise ConflictError("Email already registered")
        self.db.refresh(user)

        result = self._start_session(user, ip)

        try:
            self.email_service.send_welcome(user.email, user.full_name)
        except Exception as e:
            logger.error(f"Failed to send welcome email: user={user.id} error={e}")

        logger.info(f"User registered: user={user.id}")
        return result

    def login(self, email: str, password: str, ip: Optional[str] = None) -> AuthResult:
        """
        Authenticate by email and password.
        Unknown email and wrong password fail identically.
        """
        user = self.users.get_by_email(email)
        if user is None:
            # Same bcrypt cost as a wrong password
            self.hasher.verify_dummy(password)
            logger.warning("Login failed - unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        if not self.hasher.verify(password, user.password_hash):
            logger.warning(f"Login failed - invalid password: user={user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            logger.warning(f"Login failed - account disabled: user={user.id}")
            raise ForbiddenError("Account is disabled")

        self.users.touch_last_login(user)
        result = self._start_session(user, ip)

        logger.info(f"User logged in: user={user.id}")
        return result

    def refresh(self, refresh_token: str, ip: Optional[str] = None) -> TokenPair:
        """Exchange a live refresh token for a new pair, rotating the refresh token."""
        record = self.refresh_tokens.verify(refresh_token)
        if record is None:
            raise UnauthorizedError(INVALID_REFRESH_MESSAGE)

        user = self.users.get_by_id(record.user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")

        new_refresh_token = self.refresh_tokens.rotate(refresh_token, user.id, ip)
        access_token = self._issue_access_token(user)

        logger.info(f"Token refreshed: user={user.id}")
        return TokenPair(access_token=access_token, refresh_token=new_refresh_token)

    def logout(self, refresh_token: Optional[str], ip: Optional[str] = None) -> None:
        """Revoke one session. Missing or already revoked tokens are a no-op."""
        if not refresh_token:
            return
        if self.refresh_tokens.revoke(refresh_token, ip, reason="logout"):
            logger.info("User logged out")

    def logout_all(self, user_id: UUID | str, ip: Optional[str] = None) -> int:
        """Revoke every session of a user."""
        count = self.refresh_tokens.revoke_all(user_id, reason="logout_all")
        logger.info(f"User logged out everywhere: user={user_id} sessions={count} ip={ip}")
        return count

    def request_password_reset(self, email: str, ip: Optional[str] = None) -> dict:
        """Start a password reset. The answer never reveals whether the email exists."""
        self.password_resets.request(email, ip)
        return {"message": PASSWORD_RESET_REQUESTED_MESSAGE}

    def reset_password(self, token: str, new_password: str, ip: Optional[str] = None) -> dict:
        """
        Set a new password from a reset token, then sign the user out everywhere.

        The password change commits first; session revocation is retried and
        a final failure is logged without undoing the password change.
        """
        password_hash = self.hasher.hash(new_password)
        user_id = self.password_resets.consume(token, password_hash)
        self._revoke_sessions(user_id, reason="password_reset")

        logger.info(f"Password reset completed: user={user_id} ip={ip}")
        return {"message": "Password reset successful"}

    def _revoke_sessions(self, user_id: UUID, reason: str) -> int:
        for attempt in range(1, self.revoke_attempts + 1):
            try:
                return self.refresh_tokens.revoke_all(user_id, reason=reason)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning(
                    f"Session revocation failed: user={user_id} reason={reason} "
                    f"attempt={attempt}/{self.revoke_attempts} error={e}"
                )

        logger.error(
            f"Sessions NOT revoked after {reason}: user={user_id}; "
            f"existing refresh tokens remain valid until expiry"
        )
        return 0

    def change_password(self, user_id: UUID | str, current_password: str, new_password: str) -> dict:
        """Change a password after verifying the current one; revokes all sessions."""
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User")

        if not self.hasher.verify(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        password_hash = self.hasher.hash(new_password)
        self.users.set_password_hash(user.id, password_hash)
        self.db.commit()

        self._revoke_sessions(user.id, reason="password_change")
        logger.info(f"Password changed: user={user.id}")
        return {"message": "Password changed successfully"}

    def get_current_user(self, user_id: UUID | str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def active_session_count(self, user_id: UUID | str) -> int:
        return self.refresh_tokens.count_active(user_id)

    def set_user_active(self, user_id: UUID | str, is_active: bool) -> User:
        """Soft (de)activate an account. Deactivation ends all sessions."""
        user = self.get_current_user(user_id)
        user = self.users.set_active(user, is_active)
        if not is_active:
            self._revoke_sessions(user.id, reason="deactivated")
        logger.info(f"User active flag set: user={user.id} is_active={is_active}")
        return user


def build_auth_service(
    db: Session,
    settings,
    email_service: Optional[EmailService] = None,
) -> AuthService:
    """Wire an AuthService and its collaborators from settings."""
    users = UserStore(db)
    email_service = email_service or EmailService.from_settings(settings)
    return AuthService(
        db=db,
        users=users,
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        signer=TokenSigner(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        ),
        refresh_tokens=RefreshTokenLedger(db, expire_days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        password_resets=PasswordResetLedger(
            db,
            users=users,
            email_service=email_service,
            expire_hours=settings.RESET_TOKEN_EXPIRE_HOURS,
        ),
        email_service=email_service,
        revoke_attempts=settings.RESET_REVOKE_ATTEMPTS,
    )
