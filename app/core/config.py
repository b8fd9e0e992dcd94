from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "dashboard-api"
    JWT_AUDIENCE: str = "dashboard-client"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Refresh / reset tokens
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    RESET_TOKEN_EXPIRE_HOURS: int = 6
    REFRESH_TOKEN_RETENTION_DAYS: int = 30
    RESET_TOKEN_RETENTION_DAYS: int = 7
    RESET_REVOKE_ATTEMPTS: int = 3

    # Password hashing (bcrypt cost factor)
    BCRYPT_ROUNDS: int = 12

    # Background cleanup of expired tokens
    TOKEN_CLEANUP_ENABLED: bool = True
    TOKEN_CLEANUP_INTERVAL_HOURS: int = 24

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # Refresh token cookie
    REFRESH_COOKIE_NAME: str = "refresh_token"
    COOKIE_SECURE: bool = False

    # Double-submit CSRF token for cookie-authenticated auth routes
    CSRF_COOKIE_NAME: str = "csrf_token"
    CSRF_HEADER_NAME: str = "X-CSRF-Token"

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Outbound email (log-only when EMAIL_API_URL is unset)
    EMAIL_FROM: str = "noreply@example.com"
    EMAIL_API_URL: Optional[str] = None
    EMAIL_API_KEY: Optional[str] = None
    EMAIL_TIMEOUT_SECONDS: int = 10

    def validate_required_secrets(self) -> list[str]:
        """Validate that critical secrets are set. Returns list of errors."""
        errors = []
        if not self.SECRET_KEY or len(self.SECRET_KEY) < 16:
            errors.append("SECRET_KEY must be set and at least 16 characters")
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL must be set")
        if self.ENVIRONMENT == "production":
            weak = ("secret", "changeme", "change-me", "password")
            if any(w in self.SECRET_KEY.lower() for w in weak):
                errors.append("SECRET_KEY looks like a placeholder")
            if not self.COOKIE_SECURE:
                errors.append("COOKIE_SECURE must be enabled in production")
        return errors

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
