"""Audit trail of administrative actions."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String

from mkcode.database import Base


class AuditAction(str, enum.Enum):
    """Every privileged action that is recorded."""

    PROMOTE_USER = "PROMOTE_USER"
    DEMOTE_USER = "DEMOTE_USER"
    RESET_USER_PASSWORD = "RESET_USER_PASSWORD"
    ACTIVATE_USER = "ACTIVATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"
    DELETE_USER = "DELETE_USER"
    BULK_DELETE_USERS = "BULK_DELETE_USERS"
    BULK_ACTIVATE_USERS = "BULK_ACTIVATE_USERS"
    BULK_DEACTIVATE_USERS = "BULK_DEACTIVATE_USERS"
    BULK_PROMOTE_USERS = "BULK_PROMOTE_USERS"
    BULK_DEMOTE_USERS = "BULK_DEMOTE_USERS"


class ActivityLogEntry(Base):
    """Immutable record of one privileged action."""

    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: entries outlive the accounts they mention.
    actor_id = Column(Integer, nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    target = Column(String(256), nullable=False, default="")
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
