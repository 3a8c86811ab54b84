from datetime import date, datetime


class SystemClock:
    def now(self) -> datetime:
        return datetime.utcnow()

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a given instant; `advance` moves it forward."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, delta) -> None:
        self.current = self.current + delta


_system_clock = SystemClock()


def get_clock() -> SystemClock:
    return _system_clock
