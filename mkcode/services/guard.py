"""Principal resolution and authorization rules."""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from mkcode.errors import Forbidden, Unauthorized, ValidationError
from mkcode.models.user import Role, User
from mkcode.services.tokens import TokenIssuer


@dataclass(frozen=True)
class UserPrincipal:
    user_id: int
    email: str
    role: Role = Role.USER


@dataclass(frozen=True)
class AdminPrincipal:
    user_id: int
    email: str
    role: Role = Role.ADMIN


Principal = UserPrincipal | AdminPrincipal


class AuthorizationGuard:
    """Turns bearer tokens into principals and enforces role and ownership rules."""

    def __init__(self, tokens: TokenIssuer) -> None:
        self.tokens = tokens

    def authenticate(self, token: str | None) -> Principal:
        """Verify a bearer token. Raises Unauthorized (or a subclass)."""
        if not token:
            raise Unauthorized("No token, authorization denied")
        claims = self.tokens.verify(token)
        if claims.role is Role.ADMIN:
            return AdminPrincipal(user_id=claims.user_id, email=claims.email)
        return UserPrincipal(user_id=claims.user_id, email=claims.email)

    def require_admin(self, principal: Principal, db: Session) -> AdminPrincipal:
        """Admit only principals that are admins in the token and in the live record."""
        if not isinstance(principal, AdminPrincipal):
            raise Forbidden()
        # Tokens outlive demotion and deactivation, so ask the store as well
        user = db.get(User, principal.user_id)
        if user is None or not user.is_active or not user.is_admin:
            raise Forbidden()
        return principal

    @staticmethod
    def ensure_not_self(principal: Principal, target_ids: int | list[int], message: str) -> None:
        """Reject administrative actions aimed at the caller's own account."""
        ids = [target_ids] if isinstance(target_ids, int) else target_ids
        if principal.user_id in ids:
            raise ValidationError(message)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
