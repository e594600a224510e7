"""One-time codes: password reset codes and email verification tokens."""

import hashlib
import logging
import secrets
from datetime import timedelta

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mkcode.clock import Clock
from mkcode.config import Settings
from mkcode.errors import InvalidOrExpiredCode
from mkcode.models.tokens import ResetToken, VerificationToken
from mkcode.models.user import User
from mkcode.services.mailer import Mailer
from mkcode.services.passwords import PasswordHasher

logger = logging.getLogger("mkcode.reset")

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a verification code has been sent."
RESET_CODE_DIGITS = 6


def generate_reset_code() -> str:
    """Uniformly random code of exactly six ASCII digits."""
    return f"{secrets.randbelow(10**RESET_CODE_DIGITS):0{RESET_CODE_DIGITS}d}"


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ResetCodeManager:
    """Issues, checks and consumes password reset codes and verification tokens.

    Each user has at most one reset row and one verification row; the
    ``user_id`` columns are unique, and issuing deletes the old row and inserts
    the new one in a single transaction.
    """

    def __init__(self, settings: Settings, clock: Clock, hasher: PasswordHasher, mailer: Mailer) -> None:
        self.clock = clock
        self.hasher = hasher
        self.mailer = mailer
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")
        self.reset_ttl = timedelta(minutes=settings.RESET_CODE_EXPIRE_MINUTES)
        self.verification_ttl = timedelta(minutes=settings.VERIFICATION_TOKEN_EXPIRE_MINUTES)

    # --- Password reset ---

    def request_reset(self, db: Session, email: str, tasks: BackgroundTasks) -> str:
        """Issue a reset code if the account exists.

        Returns the same message either way so callers cannot learn which
        addresses are registered. An unknown address spends one hash worth of
        time and the email is queued on ``tasks``, so the two paths take as
        long as each other.
        """
        user = _find_user(db, email)
        if user is None:
            self.hasher.burn(generate_reset_code())
            logger.info("Password reset requested for unknown address")
            return RESET_REQUESTED_MESSAGE

        code = generate_reset_code()
        code_hash = self.hasher.hash(code)
        expires_at = self.clock.now() + self.reset_ttl
        self._replace_row(db, ResetToken, user.id, code_hash=code_hash, expires_at=expires_at)

        tasks.add_task(
            self.mailer.send,
            user.email,
            "password_reset",
            {"name": user.name, "code": code, "expires_minutes": int(self.reset_ttl.total_seconds() // 60)},
        )
        logger.info("Password reset code issued for user %s", user.id)
        return RESET_REQUESTED_MESSAGE

    def verify_code(self, db: Session, email: str, code: str) -> User:
        """Check a code without consuming it."""
        user, _ = self._match(db, email, code)
        return user

    def reset_password(self, db: Session, email: str, code: str, new_password: str, tasks: BackgroundTasks) -> User:
        """Consume a code and replace the user's password."""
        user, token = self._match(db, email, code)
        new_hash = self.hasher.hash(new_password)

        # Whoever deletes the matched row owns the code; a concurrent reset that
        # loses this race sees zero rows and fails like an expired code.
        consumed = db.query(ResetToken).filter(ResetToken.id == token.id).delete(synchronize_session=False)
        if consumed != 1:
            db.rollback()
            raise InvalidOrExpiredCode()
        db.query(ResetToken).filter(ResetToken.user_id == user.id).delete(synchronize_session=False)
        db.query(User).filter(User.id == user.id).update(
            {User.password_hash: new_hash, User.updated_at: self.clock.now()},
            synchronize_session=False,
        )
        db.commit()
        db.refresh(user)

        tasks.add_task(
            self.mailer.send, user.email, "password_changed", {"name": user.name, "login_url": f"{self.frontend_url}/login"}
        )
        logger.info("Password reset completed for user %s", user.id)
        return user

    def _match(self, db: Session, email: str, code: str) -> tuple[User, ResetToken]:
        user = _find_user(db, email)
        if user is None:
            self.hasher.burn(code)
            raise InvalidOrExpiredCode()

        token = db.query(ResetToken).filter(ResetToken.user_id == user.id).first()
        if token is None or not token.is_live(self.clock.now()):
            raise InvalidOrExpiredCode()
        if not self.hasher.verify(code, token.code_hash):
            raise InvalidOrExpiredCode()
        return user, token

    # --- Email verification ---

    def stage_verification(self, db: Session, user: User) -> str:
        """Add a fresh verification row to the session without committing."""
        token = secrets.token_urlsafe(32)
        db.query(VerificationToken).filter(VerificationToken.user_id == user.id).delete(synchronize_session=False)
        db.add(
            VerificationToken(
                user_id=user.id,
                token_hash=_digest(token),
                expires_at=self.clock.now() + self.verification_ttl,
                created_at=self.clock.now(),
            )
        )
        return token

    def resend_verification(self, db: Session, user: User, tasks: BackgroundTasks) -> None:
        if user.is_verified:
            return
        token = secrets.token_urlsafe(32)
        self._replace_row(
            db,
            VerificationToken,
            user.id,
            token_hash=_digest(token),
            expires_at=self.clock.now() + self.verification_ttl,
        )
        self.send_verification(user, token, tasks, kind="verify_email")

    def send_verification(self, user: User, token: str, tasks: BackgroundTasks, kind: str = "welcome") -> None:
        tasks.add_task(
            self.mailer.send,
            user.email,
            kind,
            {
                "name": user.name,
                "verify_url": f"{self.frontend_url}/verify-email?token={token}",
                "expires_hours": int(self.verification_ttl.total_seconds() // 3600),
            },
        )

    def verify_email(self, db: Session, token: str) -> User:
        """Consume a verification token and mark its owner verified."""
        row = db.query(VerificationToken).filter(VerificationToken.token_hash == _digest(token)).first()
        if row is None or not row.is_live(self.clock.now()):
            raise InvalidOrExpiredCode("Invalid or expired verification link")

        user = db.get(User, row.user_id)
        if user is None:
            raise InvalidOrExpiredCode("Invalid or expired verification link")

        user.is_verified = True
        db.delete(row)
        db.commit()
        logger.info("Email verified for user %s", user.id)
        return user

    # --- Shared ---

    def discard_all(self, db: Session, user_ids: list[int]) -> None:
        """Stage deletion of every reset and verification row for these users."""
        db.query(ResetToken).filter(ResetToken.user_id.in_(user_ids)).delete(synchronize_session=False)
        db.query(VerificationToken).filter(VerificationToken.user_id.in_(user_ids)).delete(synchronize_session=False)

    def _replace_row(self, db: Session, model: type[ResetToken] | type[VerificationToken], user_id: int, **values) -> None:
        # A concurrent request for the same user can win the unique user_id
        # insert; retrying once replaces its row with ours.
        for attempt in range(2):
            db.query(model).filter(model.user_id == user_id).delete(synchronize_session=False)
            db.add(model(user_id=user_id, created_at=self.clock.now(), **values))
            try:
                db.commit()
                return
            except IntegrityError:
                db.rollback()
                if attempt:
                    raise


def _find_user(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
