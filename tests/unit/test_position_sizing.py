"""
Unit tests for the position sizing policy.
"""

import pytest

from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.position import Position
from paper_arena.core.models.rules import PositionSizingRules
from paper_arena.core.trading.position_sizing import PositionSizingPolicy


def _hold(portfolio: AgentPortfolio, ticker: str, shares: int, price: float) -> None:
    portfolio.positions[ticker] = Position.open(ticker, shares, price, portfolio.created_at)
    portfolio.current_cash -= shares * price
    portfolio.refresh_total_value()


class TestBuySizing:
    """Test suite for BUY sizing."""

    def test_should_size_by_confidence_and_max_position(self, portfolio: AgentPortfolio) -> None:
        result = PositionSizingPolicy().calculate_buy_size(portfolio, "AAPL", 90.0, 50.0)

        assert result.is_valid
        assert result.shares == 360
        assert result.value == 18000.0
        assert result.warnings == ()

    def test_should_floor_to_whole_shares(self, portfolio: AgentPortfolio) -> None:
        result = PositionSizingPolicy().calculate_buy_size(portfolio, "AAPL", 50.0, 333.0)

        assert result.shares == 30
        assert result.value == 9990.0

    @pytest.mark.parametrize(
        ("confidence", "price", "reason"),
        [
            (50.0, 0.0, "Invalid current price"),
            (101.0, 50.0, "Invalid confidence value (must be 0-100)"),
            (0.0, 50.0, "Confidence is 0 - no trade"),
            (10.0, 20000.0, "Trade size too small (min 100)"),
        ],
    )
    def test_should_reject_unsizeable_requests(
        self, portfolio: AgentPortfolio, confidence: float, price: float, reason: str
    ) -> None:
        result = PositionSizingPolicy().calculate_buy_size(portfolio, "AAPL", confidence, price)

        assert not result.is_valid
        assert result.shares == 0
        assert result.reasons == (reason,)

    def test_should_reject_when_position_already_at_max(self, portfolio: AgentPortfolio) -> None:
        _hold(portfolio, "AAPL", 200, 100.0)

        result = PositionSizingPolicy().calculate_buy_size(portfolio, "AAPL", 90.0, 100.0)

        assert result.reasons == ("Already at max position size (20%)",)

    def test_should_reject_when_cash_below_reserve(self, portfolio: AgentPortfolio) -> None:
        _hold(portfolio, "AAPL", 950, 100.0)

        result = PositionSizingPolicy().calculate_buy_size(portfolio, "MSFT", 90.0, 100.0)

        assert result.reasons == ("Insufficient cash (min 100)",)

    def test_should_shrink_to_max_invested_limit(self, portfolio: AgentPortfolio) -> None:
        for ticker in ("AAA", "BBB", "CCC", "DDD"):
            _hold(portfolio, ticker, 1875, 10.0)

        result = PositionSizingPolicy().calculate_buy_size(portfolio, "EEE", 100.0, 100.0)

        assert result.is_valid
        assert result.shares == 50
        assert result.value == 5000.0
        assert result.warnings == ("Reduced to fit max invested limit (80%)",)

    def test_should_reject_new_ticker_at_max_positions(self, portfolio: AgentPortfolio) -> None:
        for i in range(10):
            _hold(portfolio, f"T{i}", 10, 100.0)

        result = PositionSizingPolicy().calculate_buy_size(portfolio, "NEW", 50.0, 100.0)

        assert result.reasons == ("Max positions reached (10)",)

    def test_should_allow_adding_to_existing_at_max_positions(
        self, portfolio: AgentPortfolio
    ) -> None:
        for i in range(10):
            _hold(portfolio, f"T{i}", 10, 100.0)

        result = PositionSizingPolicy().calculate_buy_size(portfolio, "T0", 50.0, 100.0)

        assert result.is_valid

    def test_should_respect_custom_rules(self, portfolio: AgentPortfolio) -> None:
        rules = PositionSizingRules(max_position_percent=0.1)

        result = PositionSizingPolicy(rules).calculate_buy_size(portfolio, "AAPL", 100.0, 100.0)

        assert result.shares == 100


class TestSellSizing:
    """Test suite for SELL size validation."""

    def test_should_accept_sell_within_holdings(self, portfolio: AgentPortfolio) -> None:
        _hold(portfolio, "AAPL", 10, 100.0)

        result = PositionSizingPolicy().validate_sell_size(portfolio, "AAPL", 10)

        assert result.is_valid
        assert result.value == 1000.0

    def test_should_reject_sell_without_position(self, portfolio: AgentPortfolio) -> None:
        result = PositionSizingPolicy().validate_sell_size(portfolio, "AAPL", 1)

        assert result.reasons == ("No position found to sell",)

    def test_should_reject_sell_above_holdings(self, portfolio: AgentPortfolio) -> None:
        _hold(portfolio, "AAPL", 10, 100.0)

        result = PositionSizingPolicy().validate_sell_size(portfolio, "AAPL", 11)

        assert result.reasons == ("Cannot sell 11 shares, only 10 available",)

    def test_should_reject_non_integer_shares(self, portfolio: AgentPortfolio) -> None:
        result = PositionSizingPolicy().validate_sell_size(portfolio, "AAPL", 0)

        assert not result.is_valid
