"""Bearer token issuing and verification."""

from calendar import timegm
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from mkcode.clock import Clock
from mkcode.config import Settings
from mkcode.errors import ExpiredToken, InvalidToken
from mkcode.models.user import Role


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a bearer token."""

    user_id: int
    email: str
    role: Role
    expires_at: datetime


class TokenIssuer:
    """Signs and verifies stateless HS256 JWTs.

    Expiry is checked against the injected clock rather than by the JWT
    library, so tests can move time forward. There is no revocation list: a
    token stays valid until ``exp`` even if the account changes afterwards.
    """

    def __init__(self, settings: Settings, clock: Clock) -> None:
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.default_ttl = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
        self.clock = clock

    def issue(self, user_id: int, email: str, role: str, ttl: timedelta | None = None) -> str:
        """Create a token for the given identity."""
        now = self.clock.now()
        expire = now + (ttl if ttl is not None else self.default_ttl)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": Role(role).value,
            "iat": timegm(now.utctimetuple()),
            "exp": timegm(expire.utctimetuple()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode a token. Raises InvalidToken or ExpiredToken."""
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise InvalidToken() from None

        try:
            claims = TokenClaims(
                user_id=int(payload["sub"]),
                email=str(payload["email"]),
                role=Role(payload["role"]),
                expires_at=datetime.utcfromtimestamp(int(payload["exp"])),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidToken() from None

        if self.clock.now() >= claims.expires_at:
            raise ExpiredToken()
        return claims
