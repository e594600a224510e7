"""Tests for the audit log service."""

from sqlalchemy.orm import Session

from mkcode.models.activity_log import ActivityLogEntry, AuditAction
from mkcode.services.admin import RequestContext
from mkcode.services.guard import AdminPrincipal


class TestAppend:
    """Tests for writing entries."""

    def test_append_records_entry(self, services, db_session: Session, clock):
        entry = services.audit.append(
            db_session,
            1,
            AuditAction.PROMOTE_USER,
            "bob@example.com",
            {"userId": 2, "newRole": "admin"},
            ip_address="10.0.0.1",
            user_agent="pytest",
        )
        assert entry is not None
        assert entry.created_at == clock.now()
        stored = db_session.query(ActivityLogEntry).one()
        assert stored.action == "PROMOTE_USER"
        assert stored.details == {"userId": 2, "newRole": "admin"}

    def test_append_failure_is_swallowed(self, services, db_session: Session, monkeypatch):
        def broken_commit():
            raise RuntimeError("disk full")

        monkeypatch.setattr(db_session, "commit", broken_commit)
        entry = services.audit.append(db_session, 1, AuditAction.DELETE_USER, "gone@example.com")
        assert entry is None

    def test_failed_append_keeps_mutation(
        self, services, db_session: Session, test_user: dict, admin_user: dict, monkeypatch
    ):
        """A committed action stays committed when its audit write fails."""

        def broken_entry(**kwargs):
            raise RuntimeError("audit store offline")

        monkeypatch.setattr("mkcode.services.audit.ActivityLogEntry", broken_entry)
        actor = AdminPrincipal(user_id=admin_user["user_id"], email=admin_user["email"])
        services.admin.promote(db_session, actor, test_user["user_id"], RequestContext())

        db_session.expire_all()
        assert services.credentials.get(db_session, test_user["user_id"]).role == "admin"
        assert db_session.query(ActivityLogEntry).count() == 0


class TestQuery:
    """Tests for reading entries back."""

    def _seed(self, services, db: Session, clock):
        services.audit.append(db, 1, AuditAction.PROMOTE_USER, "a@example.com")
        clock.advance(seconds=1)
        services.audit.append(db, 2, AuditAction.DEMOTE_USER, "b@example.com")
        clock.advance(seconds=1)
        services.audit.append(db, 1, AuditAction.DELETE_USER, "c@example.com")

    def test_newest_first(self, services, db_session: Session, clock):
        self._seed(services, db_session, clock)
        page = services.audit.query(db_session)
        assert page.total == 3
        assert [e.target for e in page.entries] == ["c@example.com", "b@example.com", "a@example.com"]

    def test_filter_by_actor_and_action(self, services, db_session: Session, clock):
        self._seed(services, db_session, clock)
        assert [e.target for e in services.audit.query(db_session, actor_id=1).entries] == [
            "c@example.com",
            "a@example.com",
        ]
        page = services.audit.query(db_session, action=AuditAction.DEMOTE_USER)
        assert [e.actor_id for e in page.entries] == [2]

    def test_paging(self, services, db_session: Session, clock):
        self._seed(services, db_session, clock)
        page = services.audit.query(db_session, page=2, limit=2)
        assert page.pages == 2
        assert [e.target for e in page.entries] == ["a@example.com"]

    def test_same_instant_ordered_by_insertion(self, services, db_session: Session):
        for target in ("first", "second"):
            services.audit.append(db_session, 1, AuditAction.ACTIVATE_USER, target)
        assert [e.target for e in services.audit.query(db_session).entries] == ["second", "first"]
