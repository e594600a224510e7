"""Audit log of administrative actions."""

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from mkcode.clock import Clock
from mkcode.models.activity_log import ActivityLogEntry, AuditAction

logger = logging.getLogger("mkcode.audit")


@dataclass
class AuditPage:
    """One page of audit entries, newest first."""

    entries: list[ActivityLogEntry]
    total: int
    page: int
    pages: int


class AuditLog:
    """Append-only store of privileged actions.

    Nothing here updates or deletes an entry once written.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def append(
        self,
        db: Session,
        actor_id: int | None,
        action: AuditAction,
        target: str,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ActivityLogEntry | None:
        """Record one entry.

        Call this after the recorded operation has committed. A failure here is
        logged and swallowed: losing an audit row must not undo or fail the
        action it describes.
        """
        try:
            entry = ActivityLogEntry(
                actor_id=actor_id,
                action=AuditAction(action).value,
                target=target,
                details=details or {},
                ip_address=ip_address,
                user_agent=(user_agent or "")[:512] or None,
                created_at=self.clock.now(),
            )
            db.add(entry)
            db.commit()
            return entry
        except Exception:
            logger.exception("Failed to write audit log entry %s on %s", action, target)
            db.rollback()
            return None

    def query(
        self,
        db: Session,
        action: AuditAction | None = None,
        actor_id: int | None = None,
        page: int = 1,
        limit: int = 100,
    ) -> AuditPage:
        """Filter entries by action and actor, newest first."""
        page = max(page, 1)
        limit = max(limit, 1)
        q = db.query(ActivityLogEntry)
        if action is not None:
            q = q.filter(ActivityLogEntry.action == AuditAction(action).value)
        if actor_id is not None:
            q = q.filter(ActivityLogEntry.actor_id == actor_id)

        total = q.count()
        entries = (
            q.order_by(ActivityLogEntry.created_at.desc(), ActivityLogEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return AuditPage(entries=entries, total=total, page=page, pages=math.ceil(total / limit))
