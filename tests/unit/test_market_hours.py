"""
Unit tests for the US equity market hours calendar.
"""

from datetime import UTC, date, datetime

from paper_arena.core.enums import MarketSession
from paper_arena.core.trading.market_hours import EASTERN, MarketHoursCalendar


class TestMarketHoursCalendar:
    """Test suite for MarketHoursCalendar."""

    def test_should_be_open_during_regular_session(self) -> None:
        status = MarketHoursCalendar().status(datetime(2026, 10, 14, 15, 0, tzinfo=UTC))

        assert status.is_open
        assert status.session == MarketSession.OPEN
        assert status.describe() == "Market is open"

    def test_should_report_pre_market_before_open(self) -> None:
        at = datetime(2026, 10, 14, 9, 0, tzinfo=EASTERN)

        status = MarketHoursCalendar().status(at)

        assert status.session == MarketSession.PRE_MARKET
        assert status.next_open == datetime(2026, 10, 14, 9, 30, tzinfo=EASTERN)

    def test_should_report_after_hours_at_close(self) -> None:
        at = datetime(2026, 10, 14, 16, 0, tzinfo=EASTERN)

        status = MarketHoursCalendar().status(at)

        assert status.session == MarketSession.AFTER_HOURS
        assert status.next_open == datetime(2026, 10, 15, 9, 30, tzinfo=EASTERN)

    def test_should_be_closed_on_weekend_until_monday(self) -> None:
        at = datetime(2026, 10, 17, 12, 0, tzinfo=EASTERN)

        status = MarketHoursCalendar().status(at)

        assert status.session == MarketSession.CLOSED
        assert status.reason == "weekend"
        assert status.next_open == datetime(2026, 10, 19, 9, 30, tzinfo=EASTERN)

    def test_should_be_closed_on_holiday(self) -> None:
        at = datetime(2026, 11, 26, 12, 0, tzinfo=EASTERN)

        status = MarketHoursCalendar().status(at)

        assert not status.is_open
        assert status.holiday_name == "Thanksgiving Day"
        assert "Thanksgiving Day" in status.describe()
        assert status.next_open == datetime(2026, 11, 27, 9, 30, tzinfo=EASTERN)

    def test_should_skip_holidays_when_finding_next_open(self) -> None:
        calendar = MarketHoursCalendar(holidays={date(2026, 10, 15): "Test Holiday"})

        next_open = calendar.next_open(datetime(2026, 10, 14, 17, 0, tzinfo=EASTERN))

        assert next_open == datetime(2026, 10, 16, 9, 30, tzinfo=EASTERN)

    def test_should_return_next_open_in_callers_timezone(self) -> None:
        next_open = MarketHoursCalendar().next_open(datetime(2026, 10, 14, 22, 0, tzinfo=UTC))

        assert next_open.tzinfo == UTC
        assert next_open == datetime(2026, 10, 15, 13, 30, tzinfo=UTC)

    def test_should_know_trading_days(self) -> None:
        calendar = MarketHoursCalendar()

        assert calendar.is_trading_day(date(2026, 10, 14))
        assert not calendar.is_trading_day(date(2026, 10, 18))
        assert not calendar.is_trading_day(date(2026, 12, 25))
