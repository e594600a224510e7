"""Profile API endpoints for the signed-in user."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from mkcode.database import get_db
from mkcode.dependencies import get_current_principal, get_services
from mkcode.errors import AccountDeactivated
from mkcode.models.user import User
from mkcode.schemas.auth import ChangePasswordRequest, MessageResponse, ProfileResponse, ProfileUpdateRequest
from mkcode.services.container import Services
from mkcode.services.guard import Principal

router = APIRouter(prefix="/api", tags=["Profile"])


def _active_user(services: Services, db: Session, principal: Principal) -> User:
    user = services.credentials.get(db, principal.user_id)
    if not user.is_active:
        raise AccountDeactivated()
    return user


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Get the caller's profile."""
    return ProfileResponse.model_validate(_active_user(services, db, principal))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Update the caller's profile fields."""
    user = _active_user(services, db, principal)
    user = services.credentials.update_profile(db, user.id, body.model_dump(exclude_unset=True, exclude_none=True))
    return ProfileResponse.model_validate(user)


@router.put("/profile/password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Change the caller's password after checking the current one."""
    user = _active_user(services, db, principal)
    services.credentials.change_password(db, user.id, body.old_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.delete("/profile", response_model=MessageResponse)
def delete_profile(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Delete the caller's account."""
    services.credentials.delete_account(db, principal.user_id)
    return MessageResponse(message="Account deleted successfully")


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Send a new email verification link."""
    user = _active_user(services, db, principal)
    if user.is_verified:
        return MessageResponse(message="Email is already verified")
    services.codes.resend_verification(db, user, background_tasks)
    return MessageResponse(message="Verification email sent")
