"""Refresh token ledger model. Only the SHA-256 hash of a token is stored."""

import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import relationship

from app.core.database import Base, utcnow


class RefreshToken(Base):
    """One issued refresh token. ACTIVE until revoked_at is set, then terminal."""

    __tablename__ = "refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)  # SHA-256 hex
    created_by_ip = Column(String(45), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by_ip = Column(String(45), nullable=True)
    revoked_reason = Column(String(50), nullable=True)
    replaced_by_token_id = Column(Uuid, nullable=True)  # Successor after rotation

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        # Fast "is this token still live" lookups
        Index(
            "ix_refresh_tokens_live_hash",
            "token_hash",
            postgresql_where=text("revoked_at IS NULL"),
        ),
        Index("ix_refresh_tokens_revoked_expires", "revoked_at", "expires_at"),
    )

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def __repr__(self):
        return f"<RefreshToken {self.id} user={self.user_id}>"
