import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import relationship

from app.core.database import Base, utcnow


class PasswordResetToken(Base):
    """Single-use, time-boxed password reset token (hash only)."""

    __tablename__ = "password_reset_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)  # SHA-256 hex
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by_ip = Column(String(45), nullable=True)

    user = relationship("User", back_populates="password_reset_tokens")

    __table_args__ = (
        Index(
            "ix_password_reset_tokens_unused_hash",
            "token_hash",
            postgresql_where=text("used_at IS NULL"),
        ),
        Index("ix_password_reset_tokens_expires_at", "expires_at"),
    )

    def __repr__(self):
        return f"<PasswordResetToken {self.id} user={self.user_id}>"
