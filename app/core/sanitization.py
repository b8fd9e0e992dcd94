"""Input sanitization and validation utilities."""

import re
import bleach


# Maximum lengths for different field types
MAX_LENGTHS = {
    "name": 100,
    "email": 255,
    "default": 255,
}

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def sanitize_string(
    value: str,
    max_length: int = MAX_LENGTHS["default"],
    strip_html: bool = True,
) -> str:
    """
    Sanitize a string input.

    - Strips leading/trailing whitespace
    - Removes HTML tags
    - Collapses internal whitespace
    - Truncates to max length
    """
    if not value:
        return ""

    value = value.strip()

    if strip_html:
        value = bleach.clean(value, tags=[], strip=True)

    value = " ".join(value.split())

    if len(value) > max_length:
        value = value[:max_length]

    return value


def sanitize_name(value: str) -> str:
    """Sanitize a person's display name."""
    return sanitize_string(value, max_length=MAX_LENGTHS["name"])


def sanitize_email(value: str) -> str:
    """Trim, strip markup and lower-case an email address."""
    return sanitize_string(value, max_length=MAX_LENGTHS["email"]).lower()


def validate_email(value: str) -> bool:
    """Validate email format."""
    if not value or len(value) > MAX_LENGTHS["email"]:
        return False
    return bool(EMAIL_PATTERN.match(value))
