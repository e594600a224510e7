"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime

import pytest
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from main import create_app
from mkcode.clock import FrozenClock
from mkcode.config import Settings
from mkcode.database import Base
from mkcode.models.user import Role, User
from mkcode.services.mailer import Mailer

# bcrypt's floor of 10 rounds is enforced by Settings; tests drop the shared
# hasher to the library minimum so the suite stays fast.
TEST_BCRYPT_ROUNDS = 4


class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory instead of delivering them."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, kind: str, params: dict | None = None) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "kind": kind, "params": params or {}})
        return True

    def last(self, kind: str) -> dict:
        return [m for m in self.sent if m["kind"] == kind][-1]


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        JWT_SECRET_KEY="test-secret-key",
        RATE_LIMIT_ENABLED=False,
        SMTP_USER="",
        SMTP_PASS="",
        FRONTEND_URL="http://frontend.test",
    )


@pytest.fixture(name="clock")
def clock_fixture() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture(name="mailer")
def mailer_fixture(settings: Settings) -> RecordingMailer:
    return RecordingMailer(settings)


@pytest.fixture(name="app")
def app_fixture(settings: Settings, clock: FrozenClock, mailer: RecordingMailer):
    """Application on an in-memory SQLite database."""
    application = create_app(settings, clock=clock, mailer=mailer)
    Base.metadata.create_all(bind=application.state.engine)
    application.state.services.credentials.hasher.rounds = TEST_BCRYPT_ROUNDS
    yield application
    Base.metadata.drop_all(bind=application.state.engine)
    application.state.engine.dispose()


@pytest.fixture(name="services")
def services_fixture(app):
    return app.state.services


@pytest.fixture(name="db_session")
def db_session_fixture(app):
    """A session on the same database the app uses."""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="client")
def client_fixture(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture(name="limited_client")
def limited_client_fixture(app, services):
    """Test client with rate limiting switched on."""
    services.rate_limiter.enabled = True
    with TestClient(app) as c:
        yield c
    services.rate_limiter.enabled = False
    services.rate_limiter.reset()


def make_user(
    services,
    db: Session,
    email: str = "test@example.com",
    password: str = "password123",
    name: str = "Test User",
    role: Role = Role.USER,
) -> dict:
    """Register a user directly through the credential store; returns its id, credentials and a token."""
    tasks = BackgroundTasks()
    result = services.credentials.register(db, name, email, password, tasks)
    run_tasks(tasks)
    user = result.user
    if role is not Role.USER:
        user.role = role.value
        db.commit()
    token = services.tokens.issue(user.id, user.email, user.role)
    return {"user_id": user.id, "email": user.email, "name": user.name, "password": password, "token": token}


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="test_user")
def test_user_fixture(services, db_session: Session) -> dict:
    return make_user(services, db_session)


@pytest.fixture(name="admin_user")
def admin_user_fixture(services, db_session: Session) -> dict:
    return make_user(services, db_session, email="admin@example.com", name="Admin", role=Role.ADMIN)


def reload(db: Session, user_id: int) -> User | None:
    """Fetch a user bypassing anything cached in this session."""
    db.expire_all()
    return db.get(User, user_id)


def run_tasks(tasks: BackgroundTasks) -> None:
    """Run queued background work the way Starlette does after a response."""
    asyncio.run(tasks())
