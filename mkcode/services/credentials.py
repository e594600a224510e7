"""Account registration, login and password management."""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mkcode.clock import Clock
from mkcode.errors import AccountDeactivated, DuplicateEmail, InvalidCredentials, NotFound, ValidationError
from mkcode.models.user import Role, User
from mkcode.services.passwords import PasswordHasher
from mkcode.services.reset_codes import ResetCodeManager
from mkcode.services.tokens import TokenIssuer

logger = logging.getLogger("mkcode.auth")

PROFILE_FIELDS = ("name", "email", "bio", "phone", "location", "website")


@dataclass
class AuthResult:
    """A user together with a freshly issued bearer token."""

    user: User
    token: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Owns user records and their password hashes."""

    def __init__(self, clock: Clock, hasher: PasswordHasher, tokens: TokenIssuer, codes: ResetCodeManager) -> None:
        self.clock = clock
        self.hasher = hasher
        self.tokens = tokens
        self.codes = codes

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()

    def get(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def register(self, db: Session, name: str, email: str, password: str, tasks: BackgroundTasks) -> AuthResult:
        """Create an unverified account and queue a welcome notice on ``tasks``."""
        email = normalize_email(email)
        if self.find_by_email(db, email):
            raise DuplicateEmail()

        now = self.clock.now()
        user = User(
            email=email,
            name=name.strip(),
            password_hash=self.hasher.hash(password),
            role=Role.USER.value,
            is_active=True,
            is_verified=False,
            login_count=0,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        try:
            db.flush()
            verify_token = self.codes.stage_verification(db, user)
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same address
            db.rollback()
            raise DuplicateEmail() from None
        db.refresh(user)

        self.codes.send_verification(user, verify_token, tasks)
        logger.info("Registered user %s", user.id)
        return AuthResult(user=user, token=self.issue_token(user))

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        """Check credentials and record the login.

        Unknown email and wrong password produce the same error.
        """
        user = self.find_by_email(db, email)
        if user is None:
            self.hasher.burn(password)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountDeactivated()

        db.query(User).filter(User.id == user.id).update(
            {User.last_login_at: self.clock.now(), User.login_count: User.login_count + 1},
            synchronize_session=False,
        )
        db.commit()
        db.refresh(user)
        return AuthResult(user=user, token=self.issue_token(user))

    def issue_token(self, user: User) -> str:
        return self.tokens.issue(user.id, user.email, user.role)

    def change_password(self, db: Session, user_id: int, old_password: str, new_password: str) -> None:
        user = self.get(db, user_id)
        if not self.hasher.verify(old_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        self.set_password(db, user.id, new_password)
        logger.info("Password changed for user %s", user.id)

    def set_password(self, db: Session, user_id: int, new_password: str) -> None:
        """Replace the stored hash with a single UPDATE so readers never see a partial value."""
        new_hash = self.hasher.hash(new_password)
        updated = db.query(User).filter(User.id == user_id).update(
            {User.password_hash: new_hash, User.updated_at: self.clock.now()},
            synchronize_session=False,
        )
        if not updated:
            db.rollback()
            raise NotFound("User not found")
        db.commit()

    def update_profile(self, db: Session, user_id: int, changes: dict[str, Any]) -> User:
        user = self.get(db, user_id)
        unknown = set(changes) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
            other = self.find_by_email(db, changes["email"])
            if other is not None and other.id != user.id:
                raise DuplicateEmail("Email already in use")
            if changes["email"] != user.email:
                user.is_verified = False

        for key, value in changes.items():
            setattr(user, key, value.strip() if isinstance(value, str) else value)
        user.updated_at = self.clock.now()
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateEmail("Email already in use") from None
        db.refresh(user)
        return user

    def delete_account(self, db: Session, user_id: int) -> None:
        """Remove the account and every one-time token that belongs to it."""
        self.get(db, user_id)
        self.purge(db, [user_id])
        db.commit()
        logger.info("Deleted account %s", user_id)

    def purge(self, db: Session, user_ids: list[int]) -> int:
        """Stage deletion of users and their tokens; the caller commits."""
        self.codes.discard_all(db, user_ids)
        return db.query(User).filter(User.id.in_(user_ids)).delete(synchronize_session=False)
