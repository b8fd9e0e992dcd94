import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import utcnow
from app.core.exceptions import InvalidTokenError
from app.core.security import generate_secure_token, hash_token
from app.models import RefreshToken

logger = logging.getLogger(__name__)


class RefreshTokenLedger:
    """
    Persists opaque refresh tokens as SHA-256 hashes.

    Each record moves ACTIVE -> REVOKED exactly once. Rotation never edits
    a record's hash; it revokes the presented record and inserts a successor
    in the same transaction.
    """

    def __init__(
        self,
        db: Session,
        expire_days: int = 30,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.expire_days = expire_days
        self.clock = clock

    @staticmethod
    def generate() -> str:
        """Generate a new plaintext refresh token (256 bits of entropy)."""
        return generate_secure_token()

    def _new_record(self, user_id: UUID, token: str, ip: Optional[str]) -> RefreshToken:
        now = self.clock()
        return RefreshToken(
            id=uuid4(),
            user_id=user_id,
            token_hash=hash_token(token),
            created_by_ip=ip,
            created_at=now,
            expires_at=now + timedelta(days=self.expire_days),
        )

    def store(self, user_id: UUID, token: str, ip: Optional[str] = None) -> RefreshToken:
        """Store the hash of a freshly generated refresh token."""
        record = self._new_record(user_id, token, ip)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.debug(f"Refresh token stored: id={record.id} user={user_id}")
        return record

    def verify(self, token: str) -> Optional[RefreshToken]:
        """
        Return the live record for a plaintext token, or None.

        None covers unknown, revoked and expired tokens alike; a token is
        expired from the instant now reaches expires_at.
        """
        if not token:
            return None

        token_hash = hash_token(token)
        record = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == token_hash
        ).first()

        if record is None:
            logger.info(f"Refresh token not found: hash={token_hash[:8]}")
            return None

        if record.revoked_at is not None:
            # A revoked token coming back is a replay signal
            logger.warning(
                f"Revoked refresh token presented: id={record.id} user={record.user_id} "
                f"revoked_at={record.revoked_at.isoformat()} reason={record.revoked_reason} "
                f"replaced_by={record.replaced_by_token_id}"
            )
            return None

        if self.clock() >= record.expires_at:
            logger.info(f"Refresh token expired: id={record.id} expires_at={record.expires_at.isoformat()}")
            return None

        return record

    def rotate(self, old_token: str, user_id: UUID | str, ip: Optional[str] = None) -> str:
        """
        Revoke the presented token and issue its successor atomically.
        Returns the new plaintext token.
        """
        record = self.verify(old_token)
        if record is None:
            raise InvalidTokenError("Invalid or expired refresh token")

        if str(record.user_id) != str(user_id):
            logger.warning(f"Refresh token {record.id} presented for a different user {user_id}")
            raise InvalidTokenError("Invalid or expired refresh token")

        new_token = self.generate()
        successor = self._new_record(record.user_id, new_token, ip)
        old_id = record.id

        try:
            # Conditional update: only one concurrent rotation can match
            updated = self.db.query(RefreshToken).filter(
                RefreshToken.id == old_id,
                RefreshToken.revoked_at.is_(None),
            ).update(
                {
                    "revoked_at": self.clock(),
                    "revoked_by_ip": ip,
                    "revoked_reason": "rotated",
                    "replaced_by_token_id": successor.id,
                },
                synchronize_session=False,
            )

            if updated != 1:
                self.db.rollback()
                logger.warning(
                    f"Refresh token replay detected: token {old_id} for user {user_id} "
                    f"was already rotated or revoked"
                )
                raise InvalidTokenError("Invalid or expired refresh token")

            self.db.add(successor)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Refresh token rotated: old={old_id} new={successor.id} user={user_id}")
        return new_token

    def revoke(self, token: str, ip: Optional[str] = None, reason: str = "logout") -> bool:
        """Revoke a single live token. Returns False if absent, expired or already revoked."""
        if not token:
            return False

        now = self.clock()
        updated = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(token),
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        ).update(
            {
                "revoked_at": now,
                "revoked_by_ip": ip,
                "revoked_reason": reason,
            },
            synchronize_session=False,
        )
        self.db.commit()

        if updated:
            logger.info(f"Refresh token revoked: reason={reason}")
        return bool(updated)

    def revoke_all(self, user_id: UUID | str, reason: str = "user_action") -> int:
        """Revoke every unrevoked token for a user. Returns the number revoked."""
        user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        count = self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_uuid,
            RefreshToken.revoked_at.is_(None),
        ).update(
            {"revoked_at": self.clock(), "revoked_reason": reason},
            synchronize_session=False,
        )
        self.db.commit()

        if count:
            logger.info(f"All refresh tokens revoked: user={user_id} count={count} reason={reason}")
        return count

    def count_active(self, user_id: UUID | str) -> int:
        """Number of live (unrevoked, unexpired) sessions for a user."""
        user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        return self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_uuid,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > self.clock(),
        ).count()

    def cleanup(self, retention_days: int = 30) -> int:
        """Hard-delete tokens that expired more than retention_days ago."""
        cutoff = self.clock() - timedelta(days=retention_days)
        deleted = self.db.query(RefreshToken).filter(
            RefreshToken.expires_at < cutoff
        ).delete(synchronize_session=False)
        self.db.commit()

        if deleted:
            logger.info(f"Expired refresh tokens cleaned up: count={deleted} retention_days={retention_days}")
        return deleted
