"""User model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from mkcode.database import Base


class Role(str, enum.Enum):
    """Closed set of account roles."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Site account."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    name = Column(String(50), nullable=False)
    password_hash = Column(String(128), nullable=False)
    role = Column(String(16), nullable=False, default=Role.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime, nullable=True)
    login_count = Column(Integer, nullable=False, default=0)
    bio = Column(String(500), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    location = Column(String(128), nullable=False, default="")
    website = Column(String(256), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def public_fields(self) -> dict:
        """Fields safe to return to the account owner."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_verified": self.is_verified,
            "last_login_at": self.last_login_at,
        }
