"""Tests for the background token cleanup job."""

from datetime import timedelta

from sqlalchemy.orm import sessionmaker

import app.core.database as database
from app.core import scheduler as scheduler_module
from app.core.database import utcnow
from app.models import PasswordResetToken, RefreshToken


class TestTokenCleanup:
    def test_cleanup_deletes_only_rows_past_retention(self, db_session, create_user, monkeypatch):
        monkeypatch.setattr(database, "SessionLocal", sessionmaker(bind=db_session.get_bind()))
        user = create_user()
        now = utcnow()

        db_session.add_all([
            RefreshToken(user_id=user.id, token_hash="a" * 64, expires_at=now - timedelta(days=31)),
            RefreshToken(user_id=user.id, token_hash="b" * 64, expires_at=now + timedelta(days=1)),
            PasswordResetToken(user_id=user.id, token_hash="c" * 64, expires_at=now - timedelta(days=8)),
            PasswordResetToken(user_id=user.id, token_hash="d" * 64, expires_at=now - timedelta(hours=1)),
        ])
        db_session.commit()

        counts = scheduler_module.cleanup_expired_tokens()

        assert counts == {"refresh_tokens": 1, "password_reset_tokens": 1}
        assert db_session.query(RefreshToken).count() == 1
        assert db_session.query(PasswordResetToken).count() == 1

    def test_scheduler_disabled_in_tests(self):
        scheduler_module.start_scheduler()

        assert not scheduler_module.scheduler.running
        assert scheduler_module.scheduler.get_job(scheduler_module.TOKEN_CLEANUP_JOB_ID) is None
