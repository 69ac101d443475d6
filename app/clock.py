"""Wall clock for reservation logic"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.config import settings


class Clock:
    """Current time in the restaurant's timezone, as a naive datetime.

    Reservation times are stored naive in restaurant-local time, so every
    comparison against "now" goes through this object.
    """

    def __init__(self, timezone: str = None):
        self.zone = ZoneInfo(timezone or settings.restaurant_timezone)

    def now(self) -> datetime:
        return datetime.now(self.zone).replace(tzinfo=None)

    def localize(self, value: datetime) -> datetime:
        """Convert an aware datetime to naive restaurant time; naive values pass through"""
        if value.tzinfo is None:
            return value
        return value.astimezone(self.zone).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock frozen at a given instant"""

    def __init__(self, current: datetime, timezone: str = None):
        super().__init__(timezone)
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock"""
    return _clock
