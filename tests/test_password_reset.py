"""Tests for the password reset ledger."""

import pytest

from app.core.exceptions import AlreadyUsedError, ExpiredError, InvalidTokenError
from app.core.security import hash_token
from app.models import PasswordResetToken
from app.services.password_reset_service import PasswordResetLedger


@pytest.fixture
def ledger(db_session, user_store, email_service, clock):
    return PasswordResetLedger(
        db_session,
        users=user_store,
        email_service=email_service,
        expire_hours=6,
        clock=clock,
    )


@pytest.fixture
def user(create_user):
    return create_user(email="a@x.com", password="Abcdefg1")


class TestRequest:
    """Issuing reset tokens."""

    def test_request_stores_hash_and_emails_token(self, ledger, user, email_service, db_session):
        ledger.request("a@x.com", ip="10.0.0.1")

        assert len(email_service.reset_tokens) == 1
        token = email_service.reset_tokens[0]
        record = db_session.query(PasswordResetToken).one()
        assert record.token_hash == hash_token(token)
        assert record.user_id == user.id
        assert record.created_by_ip == "10.0.0.1"
        assert f"reset-password?token={token}" in email_service.sent[-1]["text"]

    def test_request_matches_email_case_insensitively(self, ledger, user, email_service):
        ledger.request("A@X.COM")
        assert len(email_service.reset_tokens) == 1

    def test_unknown_email_is_silent_noop(self, ledger, email_service, db_session):
        ledger.request("nonexistent@x.com")

        assert email_service.reset_tokens == []
        assert db_session.query(PasswordResetToken).count() == 0

    def test_inactive_user_gets_no_token(self, ledger, user, user_store, email_service):
        user_store.set_active(user, False)

        ledger.request("a@x.com")

        assert email_service.reset_tokens == []

    def test_email_failure_does_not_raise(self, ledger, user, email_service, monkeypatch):
        def broken_send(*args, **kwargs):
            raise RuntimeError("provider down")

        monkeypatch.setattr(email_service, "send_password_reset", broken_send)

        ledger.request("a@x.com")


class TestConsume:
    """Single-use consumption."""

    def test_consume_updates_password_hash(self, ledger, user, email_service, hasher, user_store):
        ledger.request("a@x.com")
        token = email_service.reset_tokens[0]

        user_id = ledger.consume(token, hasher.hash("NewPass123"))

        assert user_id == user.id
        refreshed = user_store.get_by_id(user.id)
        assert hasher.verify("NewPass123", refreshed.password_hash)
        assert not hasher.verify("Abcdefg1", refreshed.password_hash)

    def test_second_consume_fails(self, ledger, user, email_service, hasher):
        ledger.request("a@x.com")
        token = email_service.reset_tokens[0]
        ledger.consume(token, hasher.hash("NewPass123"))

        with pytest.raises(AlreadyUsedError):
            ledger.consume(token, hasher.hash("OtherPass123"))

    def test_invalid_token(self, ledger, hasher):
        with pytest.raises(InvalidTokenError):
            ledger.consume("not-a-real-token", hasher.hash("NewPass123"))
        with pytest.raises(InvalidTokenError):
            ledger.consume("", hasher.hash("NewPass123"))

    def test_expiry_boundary_is_inclusive(self, ledger, user, email_service, hasher, clock):
        ledger.request("a@x.com")
        ledger.request("a@x.com")
        early_token, late_token = email_service.reset_tokens

        clock.advance(hours=6, seconds=-1)
        ledger.consume(early_token, hasher.hash("NewPass123"))

        clock.advance(seconds=1)
        with pytest.raises(ExpiredError):
            ledger.consume(late_token, hasher.hash("NewPass456"))

    def test_expired_token_leaves_password_unchanged(self, ledger, user, email_service, hasher, clock, user_store):
        ledger.request("a@x.com")
        clock.advance(hours=7)

        with pytest.raises(ExpiredError):
            ledger.consume(email_service.reset_tokens[0], hasher.hash("NewPass123"))

        assert hasher.verify("Abcdefg1", user_store.get_by_id(user.id).password_hash)


class TestCleanup:
    def test_cleanup_removes_old_expired_and_used(self, ledger, user, email_service, hasher, clock, db_session):
        ledger.request("a@x.com")
        ledger.request("a@x.com")
        used_token = email_service.reset_tokens[0]
        ledger.consume(used_token, hasher.hash("NewPass123"))

        clock.advance(days=2)
        ledger.request("a@x.com")

        # Nothing is past a 7 day retention yet
        assert ledger.cleanup(retention_days=7) == 0

        clock.advance(days=1)
        # The first two rows (one used, one expired) are older than a day
        assert ledger.cleanup(retention_days=1) == 2
        assert db_session.query(PasswordResetToken).count() == 1
