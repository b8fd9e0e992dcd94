"""Tests for startup configuration checks."""

from app.core.config import Settings


def _production(**overrides):
    values = {
        "DATABASE_URL": "sqlite://",
        "SECRET_KEY": "q8ZvN3kLr7TfW2xYp5HbJ9mC",
        "ENVIRONMENT": "production",
        "COOKIE_SECURE": True,
    }
    values.update(overrides)
    return Settings(**values)


class TestValidateRequiredSecrets:
    def test_strong_production_config_passes(self):
        assert _production().validate_required_secrets() == []

    def test_example_placeholder_key_rejected(self):
        errors = _production(SECRET_KEY="change-me-to-a-long-random-string").validate_required_secrets()

        assert "SECRET_KEY looks like a placeholder" in errors

    def test_short_key_rejected(self):
        errors = _production(SECRET_KEY="short").validate_required_secrets()

        assert "SECRET_KEY must be set and at least 16 characters" in errors

    def test_insecure_cookie_rejected_in_production(self):
        errors = _production(COOKIE_SECURE=False).validate_required_secrets()

        assert errors == ["COOKIE_SECURE must be enabled in production"]

    def test_placeholder_tolerated_outside_production(self):
        config = _production(SECRET_KEY="change-me-to-a-long-random-string", ENVIRONMENT="development")

        assert config.validate_required_secrets() == []
