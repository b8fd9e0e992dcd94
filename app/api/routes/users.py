from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_auth_service, require_admin
from app.core.exceptions import ValidationError
from app.models import User
from app.schemas.auth import UpdateUserStatusRequest, UserProfileResponse
from app.services.auth_service import AuthService


router = APIRouter(prefix="/users", tags=["Users"])


@router.patch("/{user_id}/status", response_model=UserProfileResponse)
def update_user_status(
    user_id: UUID,
    data: UpdateUserStatusRequest,
    admin: User = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Activate or deactivate a user (Admin only).
    Deactivation signs the user out of every session.
    """
    if user_id == admin.id and not data.is_active:
        raise ValidationError("Admins cannot deactivate their own account")

    user = auth_service.set_user_active(user_id, data.is_active)
    return UserProfileResponse.model_validate(user)
