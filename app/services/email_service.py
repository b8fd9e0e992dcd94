"""Outbound email for the auth flows (welcome, password reset).

Delivers through an HTTP email provider when EMAIL_API_URL is configured;
otherwise logs the message (development and test only).
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the provider."""


class EmailService:
    def __init__(
        self,
        from_email: str,
        frontend_url: str,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10,
        environment: str = "development",
        reset_token_hours: int = 6,
    ):
        self.from_email = from_email
        self.frontend_url = frontend_url.rstrip("/")
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.environment = environment
        self.reset_token_hours = reset_token_hours

    @classmethod
    def from_settings(cls, settings) -> "EmailService":
        return cls(
            from_email=settings.EMAIL_FROM,
            frontend_url=settings.FRONTEND_URL,
            api_url=settings.EMAIL_API_URL,
            api_key=settings.EMAIL_API_KEY,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
            environment=settings.ENVIRONMENT,
            reset_token_hours=settings.RESET_TOKEN_EXPIRE_HOURS,
        )

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        if not self.api_url:
            if self.environment == "production":
                raise EmailDeliveryError("Email provider not configured for production")
            logger.info(f"[email stub] to={to} subject={subject!r}\n{text}")
            return

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "text": text,
        }
        if html:
            payload["html"] = html

        try:
            response = httpx.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email provider request failed: {e}") from e

    def send_welcome(self, email: str, name: str) -> None:
        self.send(
            to=email,
            subject="Welcome to Survey Dashboard",
            text=(
                f"Hi {name},\n\n"
                "Your account is ready. Sign in at "
                f"{self.frontend_url}/login to create your first survey."
            ),
        )

    def send_password_reset(self, email: str, name: str, reset_token: str) -> None:
        reset_url = f"{self.frontend_url}/reset-password?token={reset_token}"
        self.send(
            to=email,
            subject="Reset Your Password",
            text=(
                f"Hi {name},\n\n"
                "You requested to reset your password. Open the link below:\n\n"
                f"  {reset_url}\n\n"
                f"This link will expire in {self.reset_token_hours} hours.\n"
                "If you did not request this, please ignore this email."
            ),
        )
