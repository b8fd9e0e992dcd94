from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4
import hashlib
import secrets

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ExpiredError, MalformedError, ValidationError
from app.schemas.auth import TokenPayload

# Token type constants
TOKEN_TYPE_ACCESS = "access"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

# 32 random bytes -> 64 hex characters (256 bits of entropy)
SECURE_TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    """Create SHA-256 hash of a token for storage."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_secure_token() -> str:
    """Generate an opaque, URL-safe random token."""
    return secrets.token_hex(SECURE_TOKEN_BYTES)


@dataclass
class PasswordStrength:
    valid: bool
    errors: list[str] = field(default_factory=list)


# Per-cost-factor hash of a random secret, used to equalize login timing
_DUMMY_HASHES: dict[int, str] = {}


class PasswordHasher:
    """
    bcrypt password hashing with a configurable cost factor.

    New hashes use bcrypt_sha256 so input beyond bcrypt's 72-byte limit
    still counts; plain bcrypt hashes remain verifiable.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt_sha256", "bcrypt"],
            deprecated=["bcrypt"],
            bcrypt_sha256__rounds=rounds,
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password. Raises ValidationError for empty or short input."""
        if not password or not isinstance(password, str):
            raise ValidationError("Password must be a non-empty string")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: Optional[str]) -> bool:
        """Verify a plain password against a hash. Never raises."""
        if not password or not hashed_password:
            return False
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError):
            # Unknown or corrupted hash format
            return False

    def verify_dummy(self, password: Optional[str]) -> bool:
        """Do the work of a real verify against a throwaway hash. Always False."""
        dummy_hash = _DUMMY_HASHES.get(self.rounds)
        if dummy_hash is None:
            dummy_hash = _DUMMY_HASHES[self.rounds] = self._context.hash(generate_secure_token())
        self._context.verify(password or "", dummy_hash)
        return False

    @staticmethod
    def assess_strength(password: Optional[str]) -> PasswordStrength:
        """Check length bounds and character classes."""
        if not password:
            return PasswordStrength(valid=False, errors=["Password is required"])

        errors = []
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(password) > MAX_PASSWORD_LENGTH:
            errors.append(f"Password must not exceed {MAX_PASSWORD_LENGTH} characters")
        if not any(c.isupper() for c in password):
            errors.append("Password must contain at least one uppercase letter")
        if not any(c.islower() for c in password):
            errors.append("Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in password):
            errors.append("Password must contain at least one number")

        return PasswordStrength(valid=not errors, errors=errors)


class TokenSigner:
    """Issues and verifies short-lived, stateless JWT access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "dashboard-api",
        audience: str = "dashboard-client",
        expire_minutes: int = 15,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.expire_minutes = expire_minutes

    def issue(
        self,
        user_id: str,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a signed access token for the given identity."""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))

        to_encode = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "jti": str(uuid4()),
            "type": TOKEN_TYPE_ACCESS,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """
        Verify signature, issuer, audience and expiry.

        Raises ExpiredError past expiry and MalformedError for anything else
        that fails to decode. No revocation list is consulted.
        """
        if not token:
            raise MalformedError("Invalid token")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise ExpiredError("Token expired. Please refresh.")
        except JWTError:
            raise MalformedError("Invalid token")

        if payload.get("type") != TOKEN_TYPE_ACCESS:
            raise MalformedError("Invalid token type")

        try:
            return TokenPayload(**payload)
        except PydanticValidationError:
            raise MalformedError("Invalid token payload")
