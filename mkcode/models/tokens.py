"""One-time credential tokens: password reset codes and email verification."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from mkcode.database import Base


class ResetToken(Base):
    """Hashed 6-digit password reset code. One row per user at most."""

    __tablename__ = "reset_token"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    code_hash = Column(String(128), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now


class VerificationToken(Base):
    """SHA-256 digest of an email verification token. One row per user at most."""

    __tablename__ = "verification_token"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    token_hash = Column(String(64), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now
