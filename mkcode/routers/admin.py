"""Administrative API endpoints.

Every route requires an admin token whose account is still an active admin.
Mutations that could lock the caller out (delete, demote, deactivate, bulk)
refuse to target the caller's own account.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mkcode.database import get_db
from mkcode.dependencies import get_request_context, get_services, require_admin
from mkcode.models.activity_log import AuditAction
from mkcode.models.user import Role
from mkcode.schemas.admin import (
    ActivityLogListResponse,
    ActivityLogResponse,
    AdminResetPasswordRequest,
    AdminUserResponse,
    BulkActionRequest,
    BulkActionResponse,
    UserIdRequest,
    UserListResponse,
)
from mkcode.schemas.auth import MessageResponse, ProfileResponse
from mkcode.services.admin import RequestContext
from mkcode.services.container import Services
from mkcode.services.guard import AdminPrincipal, AuthorizationGuard

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse)
def list_users(
    search: str | None = None,
    role: Role | None = None,
    status: str | None = Query(default=None, pattern="^(active|inactive)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminPrincipal = Depends(require_admin),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> UserListResponse:
    """List and search user accounts."""
    users, total, pages = services.admin.list_users(db, search=search, role=role, status=status, page=page, limit=limit)
    return UserListResponse(
        users=[ProfileResponse.model_validate(u) for u in users],
        total=total,
        pages=pages,
        current_page=page,
    )


@router.post("/promote", response_model=AdminUserResponse)
def promote_user(
    body: UserIdRequest,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> AdminUserResponse:
    """Give a user the admin role."""
    user = services.admin.promote(db, admin, body.user_id, ctx)
    return AdminUserResponse(message="User promoted to admin", user=ProfileResponse.model_validate(user))


@router.post("/demote", response_model=AdminUserResponse)
def demote_user(
    body: UserIdRequest,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> AdminUserResponse:
    """Take the admin role away from another admin."""
    AuthorizationGuard.ensure_not_self(admin, body.user_id, "Cannot demote yourself")
    user = services.admin.demote(db, admin, body.user_id, ctx)
    return AdminUserResponse(message="User demoted to regular user", user=ProfileResponse.model_validate(user))


@router.post("/reset-password", response_model=MessageResponse)
def reset_user_password(
    body: AdminResetPasswordRequest,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Set a new password for a user."""
    services.admin.reset_user_password(db, admin, body.user_id, body.password, ctx)
    return MessageResponse(message="Password reset successfully")


@router.post("/toggle-status", response_model=AdminUserResponse)
def toggle_user_status(
    body: UserIdRequest,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> AdminUserResponse:
    """Activate or deactivate a user."""
    AuthorizationGuard.ensure_not_self(admin, body.user_id, "Cannot deactivate yourself")
    user = services.admin.toggle_status(db, admin, body.user_id, ctx)
    state = "activated" if user.is_active else "deactivated"
    return AdminUserResponse(message=f"User {state}", user=ProfileResponse.model_validate(user))


@router.post("/bulk-action", response_model=BulkActionResponse)
def bulk_action(
    body: BulkActionRequest,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> BulkActionResponse:
    """Apply one action to several users."""
    AuthorizationGuard.ensure_not_self(admin, body.user_ids, "Cannot perform bulk action on yourself")
    affected = services.admin.bulk_action(db, admin, body.action, body.user_ids, ctx)
    return BulkActionResponse(message=f"Bulk {body.action.value} completed", affected=affected)


@router.delete("/user/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    admin: AdminPrincipal = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Delete another user's account."""
    AuthorizationGuard.ensure_not_self(admin, user_id, "Cannot delete your own account from admin panel")
    services.admin.delete_user(db, admin, user_id, ctx)
    return MessageResponse(message="User deleted successfully")


@router.get("/activity-logs", response_model=ActivityLogListResponse)
def activity_logs(
    action: AuditAction | None = None,
    actor_id: int | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=500),
    admin: AdminPrincipal = Depends(require_admin),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> ActivityLogListResponse:
    """Page through the audit trail, newest first."""
    result = services.audit.query(db, action=action, actor_id=actor_id, page=page, limit=limit)
    return ActivityLogListResponse(
        logs=[ActivityLogResponse.model_validate(e) for e in result.entries],
        total=result.total,
        pages=result.pages,
        current_page=result.page,
    )
