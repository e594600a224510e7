"""Injectable time source used for every expiry decision."""

from datetime import datetime, timedelta


class Clock:
    """Wall clock returning naive UTC datetimes."""

    def now(self) -> datetime:
        return datetime.utcnow()


class FrozenClock(Clock):
    """Clock pinned to a fixed instant; advance it explicitly."""

    def __init__(self, at: datetime | None = None) -> None:
        self._now = at or datetime.utcnow()

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now
