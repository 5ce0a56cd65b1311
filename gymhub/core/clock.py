from datetime import datetime, timedelta


class Clock:
    """Source of the current local time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Local wall-clock time (naive, in the server's timezone)."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """A clock that only moves when told to. Used by tests and backfills."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> datetime:
        self.moment = self.moment + timedelta(**kwargs)
        return self.moment


# Global instance
system_clock = SystemClock()
