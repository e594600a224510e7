"""Database session management."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mkcode.config import Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine for the configured database URL."""
    url = settings.DATABASE_URL
    if not url.startswith("sqlite"):
        return create_engine(url, echo=settings.DEBUG, pool_pre_ping=True)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url == "sqlite://":
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=settings.DEBUG, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session bound to the application's engine."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
