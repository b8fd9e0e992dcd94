import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import utcnow
from app.core.exceptions import AlreadyUsedError, ExpiredError, InvalidTokenError
from app.core.security import generate_secure_token, hash_token
from app.models import PasswordResetToken
from app.services.email_service import EmailService
from app.services.user_service import UserStore

logger = logging.getLogger(__name__)


class PasswordResetLedger:
    """Single-use, time-boxed password reset tokens."""

    def __init__(
        self,
        db: Session,
        users: UserStore,
        email_service: EmailService,
        expire_hours: int = 6,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.users = users
        self.email_service = email_service
        self.expire_hours = expire_hours
        self.clock = clock

    def request(self, email: str, ip: Optional[str] = None) -> None:
        """
        Create a reset token for an active user and send it out of band.

        Unknown or inactive emails are a silent no-op; the caller is
        responsible for answering identically in both cases.
        """
        user = self.users.get_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive email")
            return

        reset_token = generate_secure_token()
        now = self.clock()
        record = PasswordResetToken(
            user_id=user.id,
            token_hash=hash_token(reset_token),
            expires_at=now + timedelta(hours=self.expire_hours),
            created_at=now,
            created_by_ip=ip,
        )
        self.db.add(record)
        self.db.commit()
        logger.info(f"Password reset requested: user={user.id}")

        try:
            self.email_service.send_password_reset(user.email, user.full_name, reset_token)
        except Exception as e:
            logger.error(f"Failed to send password reset email: user={user.id} error={e}")

    def consume(self, token: str, new_password_hash: str) -> UUID:
        """
        Use a reset token to set a new password hash.

        The used_at mark and the password update commit together. Returns
        the owning user's id.
        """
        record = None
        if token:
            record = self.db.query(PasswordResetToken).filter(
                PasswordResetToken.token_hash == hash_token(token)
            ).first()

        if record is None:
            raise InvalidTokenError("Invalid or expired reset token")
        if record.used_at is not None:
            raise AlreadyUsedError("Reset token already used")
        if self.clock() >= record.expires_at:
            raise ExpiredError("Reset token expired")

        record_id = record.id
        user_id = record.user_id

        try:
            marked = self.db.query(PasswordResetToken).filter(
                PasswordResetToken.id == record_id,
                PasswordResetToken.used_at.is_(None),
            ).update({"used_at": self.clock()}, synchronize_session=False)

            if marked != 1:
                self.db.rollback()
                logger.warning(f"Concurrent use of password reset token {record_id}")
                raise AlreadyUsedError("Reset token already used")

            self.users.set_password_hash(user_id, new_password_hash)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Password reset token consumed: user={user_id}")
        return user_id

    def cleanup(self, retention_days: int = 7) -> int:
        """Delete tokens expired or used more than retention_days ago."""
        cutoff = self.clock() - timedelta(days=retention_days)
        deleted = self.db.query(PasswordResetToken).filter(
            or_(
                PasswordResetToken.expires_at < cutoff,
                PasswordResetToken.used_at < cutoff,
            )
        ).delete(synchronize_session=False)
        self.db.commit()

        if deleted:
            logger.info(f"Old password reset tokens cleaned up: count={deleted} retention_days={retention_days}")
        return deleted
