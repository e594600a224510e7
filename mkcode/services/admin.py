"""Administrative user management."""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import or_
from sqlalchemy.orm import Session

from mkcode.clock import Clock
from mkcode.errors import ValidationError
from mkcode.models.activity_log import AuditAction
from mkcode.models.user import Role, User
from mkcode.services.audit import AuditLog
from mkcode.services.credentials import CredentialStore
from mkcode.services.guard import AdminPrincipal

logger = logging.getLogger("mkcode.admin")


class BulkAction(str, Enum):
    DELETE = "delete"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    PROMOTE = "promote"
    DEMOTE = "demote"


BULK_AUDIT_ACTIONS = {
    BulkAction.DELETE: AuditAction.BULK_DELETE_USERS,
    BulkAction.ACTIVATE: AuditAction.BULK_ACTIVATE_USERS,
    BulkAction.DEACTIVATE: AuditAction.BULK_DEACTIVATE_USERS,
    BulkAction.PROMOTE: AuditAction.BULK_PROMOTE_USERS,
    BulkAction.DEMOTE: AuditAction.BULK_DEMOTE_USERS,
}

BULK_UPDATES = {
    BulkAction.ACTIVATE: {User.is_active: True},
    BulkAction.DEACTIVATE: {User.is_active: False},
    BulkAction.PROMOTE: {User.role: Role.ADMIN.value},
    BulkAction.DEMOTE: {User.role: Role.USER.value},
}


@dataclass(frozen=True)
class RequestContext:
    """Client details recorded alongside an audit entry."""

    ip_address: str | None = None
    user_agent: str | None = None


class AdminService:
    """Privileged mutations on other users' accounts, each one audited.

    Self-targeting is rejected by the route layer before these run.
    """

    def __init__(self, clock: Clock, credentials: CredentialStore, audit: AuditLog) -> None:
        self.clock = clock
        self.credentials = credentials
        self.audit = audit

    def list_users(
        self,
        db: Session,
        search: str | None = None,
        role: Role | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[User], int, int]:
        page = max(page, 1)
        limit = max(limit, 1)
        q = db.query(User)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if role is not None:
            q = q.filter(User.role == Role(role).value)
        if status == "active":
            q = q.filter(User.is_active.is_(True))
        elif status == "inactive":
            q = q.filter(User.is_active.is_(False))

        total = q.count()
        users = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return users, total, math.ceil(total / limit)

    def promote(self, db: Session, actor: AdminPrincipal, user_id: int, ctx: RequestContext) -> User:
        user = self.credentials.get(db, user_id)
        self._save(db, user, role=Role.ADMIN.value)
        self._record(db, actor, AuditAction.PROMOTE_USER, user, ctx, newRole=Role.ADMIN.value)
        return user

    def demote(self, db: Session, actor: AdminPrincipal, user_id: int, ctx: RequestContext) -> User:
        user = self.credentials.get(db, user_id)
        if not user.is_admin:
            raise ValidationError("User is not an admin")
        self._save(db, user, role=Role.USER.value)
        self._record(db, actor, AuditAction.DEMOTE_USER, user, ctx, newRole=Role.USER.value)
        return user

    def reset_user_password(
        self, db: Session, actor: AdminPrincipal, user_id: int, password: str, ctx: RequestContext
    ) -> User:
        user = self.credentials.get(db, user_id)
        self.credentials.set_password(db, user.id, password)
        self._record(db, actor, AuditAction.RESET_USER_PASSWORD, user, ctx)
        return user

    def toggle_status(self, db: Session, actor: AdminPrincipal, user_id: int, ctx: RequestContext) -> User:
        user = self.credentials.get(db, user_id)
        self._save(db, user, is_active=not user.is_active)
        action = AuditAction.ACTIVATE_USER if user.is_active else AuditAction.DEACTIVATE_USER
        self._record(db, actor, action, user, ctx)
        return user

    def delete_user(self, db: Session, actor: AdminPrincipal, user_id: int, ctx: RequestContext) -> None:
        user = self.credentials.get(db, user_id)
        email = user.email
        self.credentials.purge(db, [user.id])
        db.commit()
        self.audit.append(
            db, actor.user_id, AuditAction.DELETE_USER, email, {"userId": user_id}, ctx.ip_address, ctx.user_agent
        )

    def bulk_action(
        self, db: Session, actor: AdminPrincipal, action: BulkAction, user_ids: list[int], ctx: RequestContext
    ) -> int:
        """Apply one action to many accounts. Returns the number of rows affected."""
        action = BulkAction(action)
        ids = sorted(set(user_ids))
        if action is BulkAction.DELETE:
            affected = self.credentials.purge(db, ids)
        else:
            values = dict(BULK_UPDATES[action])
            values[User.updated_at] = self.clock.now()
            affected = db.query(User).filter(User.id.in_(ids)).update(values, synchronize_session=False)
        db.commit()
        self.audit.append(
            db,
            actor.user_id,
            BULK_AUDIT_ACTIONS[action],
            "multiple",
            {"count": len(ids), "userIds": ids},
            ctx.ip_address,
            ctx.user_agent,
        )
        logger.info("Bulk %s by admin %s affected %d users", action.value, actor.user_id, affected)
        return affected

    def _save(self, db: Session, user: User, **changes) -> None:
        for key, value in changes.items():
            setattr(user, key, value)
        user.updated_at = self.clock.now()
        db.commit()
        db.refresh(user)

    def _record(self, db: Session, actor: AdminPrincipal, action: AuditAction, user: User, ctx: RequestContext, **details) -> None:
        self.audit.append(
            db,
            actor.user_id,
            action,
            user.email,
            {"userId": user.id, **details},
            ctx.ip_address,
            ctx.user_agent,
        )
