from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.models import User
from app.schemas.auth import TokenPayload
from app.services.auth_service import AuthService, build_auth_service
from app.services.email_service import EmailService


# HTTP Bearer token scheme; missing credentials are reported as our 401
security = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    """Client IP, used for audit columns only."""
    return get_remote_address(request)


def get_email_service() -> EmailService:
    return EmailService.from_settings(settings)


def get_auth_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return build_auth_service(db, settings, email_service=email_service)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPayload:
    """
    Verify the bearer access token.
    Raises UnauthorizedError (or its Expired/Malformed subtypes) on failure.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No authorization header provided")
    return auth_service.signer.verify(credentials.credentials)


def get_current_user(
    payload: TokenPayload = Depends(get_token_payload),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Load the user named by a valid access token.
    NotFoundError if deleted, ForbiddenError if deactivated.
    """
    user = auth_service.get_current_user(payload.sub)
    if not user.is_active:
        raise ForbiddenError("Account is disabled")
    return user


def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency to require admin role.
    Raises ForbiddenError if user is not an active admin.
    """
    if current_user.role != "admin" or not current_user.is_active:
        raise ForbiddenError("Admin access required")
    return current_user
