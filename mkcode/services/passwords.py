"""bcrypt hashing for passwords and one-time codes."""

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing at a fixed work factor."""

    def __init__(self, rounds: int) -> None:
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    def hash(self, secret: str) -> str:
        raw = secret.encode("utf-8")
        if len(raw) > BCRYPT_MAX_BYTES:
            raise ValueError(f"secret exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        raw = secret.encode("utf-8")
        if len(raw) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("utf-8"))
        except ValueError:
            return False

    def burn(self, secret: str) -> None:
        """Spend one verification's worth of time without a real hash to check."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=self.rounds))
        raw = secret.encode("utf-8")[:BCRYPT_MAX_BYTES]
        bcrypt.checkpw(raw, self._dummy_hash)
