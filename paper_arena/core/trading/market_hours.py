"""
US equity market hours calendar (NYSE regular session).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from paper_arena.core.enums import MarketSession

EASTERN = ZoneInfo("America/New_York")
MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)

NYSE_HOLIDAYS: dict[date, str] = {
    date(2025, 1, 1): "New Year's Day",
    date(2025, 1, 20): "Martin Luther King Jr. Day",
    date(2025, 2, 17): "Presidents' Day",
    date(2025, 4, 18): "Good Friday",
    date(2025, 5, 26): "Memorial Day",
    date(2025, 6, 19): "Juneteenth",
    date(2025, 7, 4): "Independence Day",
    date(2025, 9, 1): "Labor Day",
    date(2025, 11, 27): "Thanksgiving Day",
    date(2025, 12, 25): "Christmas Day",
    date(2026, 1, 1): "New Year's Day",
    date(2026, 1, 19): "Martin Luther King Jr. Day",
    date(2026, 2, 16): "Presidents' Day",
    date(2026, 4, 3): "Good Friday",
    date(2026, 5, 25): "Memorial Day",
    date(2026, 6, 19): "Juneteenth",
    date(2026, 7, 3): "Independence Day (observed)",
    date(2026, 9, 7): "Labor Day",
    date(2026, 11, 26): "Thanksgiving Day",
    date(2026, 12, 25): "Christmas Day",
    date(2027, 1, 1): "New Year's Day",
    date(2027, 1, 18): "Martin Luther King Jr. Day",
    date(2027, 2, 15): "Presidents' Day",
    date(2027, 3, 26): "Good Friday",
    date(2027, 5, 31): "Memorial Day",
    date(2027, 6, 18): "Juneteenth (observed)",
    date(2027, 7, 5): "Independence Day (observed)",
    date(2027, 9, 6): "Labor Day",
    date(2027, 11, 25): "Thanksgiving Day",
    date(2027, 12, 24): "Christmas Day (observed)",
}


@dataclass(frozen=True)
class MarketStatus:
    """Market session at a point in time."""

    session: MarketSession
    next_open: datetime
    reason: str | None = None
    holiday_name: str | None = None

    @property
    def is_open(self) -> bool:
        return self.session == MarketSession.OPEN

    def describe(self) -> str:
        if self.is_open:
            return "Market is open"
        detail = self.holiday_name or self.reason or "closed"
        return f"Market is closed ({detail}); next open {self.next_open.isoformat()}"


class MarketHoursCalendar:
    """Regular-session calendar: 9:30-16:00 America/New_York, weekdays, minus holidays."""

    def __init__(self, holidays: dict[date, str] | None = None):
        self.holidays = NYSE_HOLIDAYS if holidays is None else holidays

    def is_trading_day(self, day: date) -> bool:
        return day.weekday() < 5 and day not in self.holidays

    def status(self, at: datetime) -> MarketStatus:
        """Return the market session at an aware datetime."""
        local = at.astimezone(EASTERN)
        today = local.date()
        next_open = self.next_open(at)

        if local.weekday() >= 5:
            return MarketStatus(MarketSession.CLOSED, next_open, reason="weekend")
        if today in self.holidays:
            return MarketStatus(
                MarketSession.CLOSED,
                next_open,
                reason="holiday",
                holiday_name=self.holidays[today],
            )
        if local.time() < MARKET_OPEN:
            return MarketStatus(MarketSession.PRE_MARKET, next_open, reason="pre_market")
        if local.time() >= MARKET_CLOSE:
            return MarketStatus(MarketSession.AFTER_HOURS, next_open, reason="after_hours")
        return MarketStatus(MarketSession.OPEN, next_open)

    def is_open(self, at: datetime) -> bool:
        return self.status(at).is_open

    def next_open(self, at: datetime) -> datetime:
        """Next regular-session open after at, in at's timezone."""
        local = at.astimezone(EASTERN)
        day = local.date()
        if local.time() >= MARKET_OPEN:
            day += timedelta(days=1)
        while not self.is_trading_day(day):
            day += timedelta(days=1)
        return datetime.combine(day, MARKET_OPEN, tzinfo=EASTERN).astimezone(at.tzinfo)
