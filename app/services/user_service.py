from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.database import utcnow
from app.models import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Credential store: user identity and password hash persistence."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address (case-insensitive)."""
        if not email:
            return None
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def get_by_id(self, user_id: UUID | str) -> Optional[User]:
        """Get a user by ID. Returns None for unparseable ids."""
        try:
            user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        except ValueError:
            return None
        return self.db.query(User).filter(User.id == user_uuid).first()

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create(
        self,
        email: str,
        password_hash: str,
        full_name: str,
        role: str = "user",
    ) -> User:
        """Create a new user. Caller commits."""
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def set_password_hash(self, user_id: UUID, password_hash: str) -> int:
        """Update a user's password hash. Caller commits."""
        return self.db.query(User).filter(User.id == user_id).update(
            {"password_hash": password_hash, "updated_at": utcnow()},
            synchronize_session=False,
        )

    def touch_last_login(self, user: User) -> None:
        user.last_login_at = utcnow()
        self.db.commit()

    def set_active(self, user: User, is_active: bool) -> User:
        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)
        return user
