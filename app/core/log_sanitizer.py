"""Keep credentials out of log output."""

import logging
import re

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = (
    "refresh_token",
    "refreshToken",
    "access_token",
    "accessToken",
    "password",
    "new_password",
    "current_password",
    "secret",
    "api_key",
    "token",
    "authorization",
)

_KEY_VALUE_PATTERN = re.compile(
    r"(?P<key>\b(?:%s))(?P<sep>['\"]?\s*[=:]\s*['\"]?)(?P<value>(?!Bearer\s)[^\s'\",&}]+)"
    % "|".join(re.escape(k) for k in SENSITIVE_KEYS),
    re.IGNORECASE,
)
_BEARER_PATTERN = re.compile(r"(?P<key>Bearer\s+)(?P<value>[A-Za-z0-9\-._~+/]+=*)", re.IGNORECASE)


def redact(message: str) -> str:
    message = _KEY_VALUE_PATTERN.sub(lambda m: f"{m.group('key')}{m.group('sep')}{REDACTED}", message)
    return _BEARER_PATTERN.sub(lambda m: f"{m.group('key')}{REDACTED}", message)


class RedactSecretsFilter(logging.Filter):
    """Mask token and password values in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactSecretsFilter) for f in handler.filters):
            handler.addFilter(RedactSecretsFilter())
