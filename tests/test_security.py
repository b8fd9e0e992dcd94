"""Tests for password hashing and access token signing."""

from datetime import timedelta

import pytest
from jose import jwt
from passlib.hash import bcrypt as passlib_bcrypt

from app.core.exceptions import ExpiredError, MalformedError, ValidationError
from app.core.security import PasswordHasher, TokenSigner, generate_secure_token, hash_token


SECRET = "test-secret-key-for-testing-only-32chars"


@pytest.fixture
def signer():
    return TokenSigner(
        secret_key=SECRET,
        issuer="dashboard-api",
        audience="dashboard-client",
        expire_minutes=15,
    )


class TestPasswordHasher:
    """bcrypt hashing and verification."""

    def test_hash_then_verify(self, hasher):
        hashed = hasher.hash("Abcdefg1")

        assert hashed != "Abcdefg1"
        assert hashed.startswith("$bcrypt-sha256$")
        assert hasher.verify("Abcdefg1", hashed) is True

    def test_verify_rejects_other_password(self, hasher):
        hashed = hasher.hash("Abcdefg1")

        assert hasher.verify("Abcdefg2", hashed) is False

    def test_same_password_hashes_differently(self, hasher):
        assert hasher.hash("Abcdefg1") != hasher.hash("Abcdefg1")

    def test_exactly_eight_characters_accepted(self, hasher):
        hashed = hasher.hash("12345678")
        assert hasher.verify("12345678", hashed)

    def test_seven_characters_rejected(self, hasher):
        with pytest.raises(ValidationError):
            hasher.hash("1234567")

    def test_empty_password_rejected(self, hasher):
        with pytest.raises(ValidationError):
            hasher.hash("")

    def test_verify_never_raises_on_malformed_hash(self, hasher):
        assert hasher.verify("Abcdefg1", "not-a-bcrypt-hash") is False
        assert hasher.verify("Abcdefg1", "") is False
        assert hasher.verify("", hasher.hash("Abcdefg1")) is False

    def test_cost_factor_is_configurable(self):
        hashed = PasswordHasher(rounds=5).hash("Abcdefg1")
        assert "r=05" in hashed

    def test_passwords_sharing_first_72_bytes_do_not_cross_verify(self, hasher):
        prefix = "Aa1" + "x" * 69
        first, second = prefix + "XyZ1", prefix + "QqQ9"
        assert PasswordHasher.assess_strength(first).valid
        assert PasswordHasher.assess_strength(second).valid

        hashed = hasher.hash(first)

        assert hasher.verify(first, hashed) is True
        assert hasher.verify(second, hashed) is False

    def test_longest_allowed_password_round_trips(self, hasher):
        password = "Aa1" + "x" * 125
        assert len(password) == 128
        assert PasswordHasher.assess_strength(password).valid

        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True
        assert hasher.verify(password[:-1] + "y", hashed) is False

    def test_legacy_bcrypt_hash_still_verifies(self, hasher):
        legacy_hash = passlib_bcrypt.using(rounds=4).hash("Abcdefg1")

        assert legacy_hash.startswith("$2b$")
        assert hasher.verify("Abcdefg1", legacy_hash) is True
        assert hasher.verify("Abcdefg2", legacy_hash) is False

    def test_verify_dummy_is_always_false(self, hasher):
        assert hasher.verify_dummy("Abcdefg1") is False
        assert hasher.verify_dummy(None) is False


class TestPasswordStrength:
    """Signup/reset strength rules."""

    def test_strong_password(self):
        result = PasswordHasher.assess_strength("Abcdefg1")
        assert result.valid
        assert result.errors == []

    def test_missing_character_classes(self):
        result = PasswordHasher.assess_strength("abcdefgh")

        assert not result.valid
        assert "Password must contain at least one uppercase letter" in result.errors
        assert "Password must contain at least one number" in result.errors

    def test_length_bounds(self):
        assert not PasswordHasher.assess_strength("Abcde1").valid
        assert not PasswordHasher.assess_strength("Ab1" + "x" * 126).valid
        assert not PasswordHasher.assess_strength(None).valid


class TestTokenSigner:
    """JWT access tokens."""

    def test_issue_and_verify(self, signer):
        token = signer.issue(user_id="user-1", email="a@x.com", role="user")

        payload = signer.verify(token)

        assert payload.sub == "user-1"
        assert payload.email == "a@x.com"
        assert payload.role == "user"
        assert payload.type == "access"
        assert payload.iss == "dashboard-api"
        assert payload.aud == "dashboard-client"
        assert payload.jti

    def test_each_token_has_unique_jti(self, signer):
        first = signer.verify(signer.issue("user-1", "a@x.com", "user"))
        second = signer.verify(signer.issue("user-1", "a@x.com", "user"))

        assert first.jti != second.jti

    def test_expired_token(self, signer):
        token = signer.issue("user-1", "a@x.com", "user", expires_delta=timedelta(seconds=-1))

        with pytest.raises(ExpiredError) as exc_info:
            signer.verify(token)
        assert exc_info.value.status_code == 401

    def test_tampered_token(self, signer):
        token = signer.issue("user-1", "a@x.com", "user")

        with pytest.raises(MalformedError):
            signer.verify(token[:-4] + "abcd")

    def test_wrong_secret(self, signer):
        other = TokenSigner(secret_key="another-secret-key-of-enough-length")
        token = other.issue("user-1", "a@x.com", "user")

        with pytest.raises(MalformedError):
            signer.verify(token)

    def test_wrong_audience(self, signer):
        other = TokenSigner(secret_key=SECRET, audience="someone-else")
        token = other.issue("user-1", "a@x.com", "user")

        with pytest.raises(MalformedError):
            signer.verify(token)

    def test_non_access_token_type(self, signer):
        token = jwt.encode(
            {"sub": "user-1", "type": "refresh", "iss": "dashboard-api", "aud": "dashboard-client"},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(MalformedError):
            signer.verify(token)

    def test_garbage_token(self, signer):
        with pytest.raises(MalformedError):
            signer.verify("not.a.jwt")
        with pytest.raises(MalformedError):
            signer.verify("")


class TestOpaqueTokens:
    def test_generate_secure_token(self):
        token = generate_secure_token()

        assert len(token) == 64
        assert token != generate_secure_token()

    def test_hash_token_is_sha256_hex(self):
        assert hash_token("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
