"""
Unit tests for performance analytics.
FIFO matching, trade statistics, Sharpe ratio, volatility and drawdowns.
"""

import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import numpy as np
import pytest

from paper_arena.core.analytics import performance
from paper_arena.core.enums import TradeAction
from paper_arena.core.models.decision import ClosedPosition
from paper_arena.core.models.records import PerformanceSnapshot
from paper_arena.core.models.trade import Trade
from paper_arena.core.types import NotEnoughData, SharpeValue

T0 = datetime(2026, 1, 5, 15, 0, tzinfo=UTC)


def _closed(pnl: float) -> ClosedPosition:
    return ClosedPosition(
        ticker="AAPL",
        shares=1,
        cost_basis=100.0,
        proceeds=100.0 + pnl,
        realized_pnl=pnl,
        realized_pnl_percent=pnl / 100.0,
        open_date=T0,
        close_date=T0,
        holding_period_days=0,
    )


def _snapshot(timestamp: datetime, total_value: float, daily_return: float = 0.0):
    return PerformanceSnapshot(
        timestamp=timestamp,
        total_value=total_value,
        cash=total_value,
        positions_value=0.0,
        total_return=0.0,
        daily_return=daily_return,
        volatility=0.0,
        sharpe_ratio=0.0,
        max_drawdown=0.0,
        current_drawdown=0.0,
        num_positions=0,
        largest_position=None,
        largest_position_percent=0.0,
    )


class TestFifoMatching:
    """Test suite for FIFO round-trip matching."""

    def test_should_match_oldest_lots_first(self, make_trade: Callable[..., Trade]) -> None:
        trades = [
            make_trade(TradeAction.BUY, "AAPL", 10, 10.0, T0),
            make_trade(TradeAction.BUY, "AAPL", 5, 20.0, T0 + timedelta(days=1)),
            make_trade(TradeAction.SELL, "AAPL", 12, 15.0, T0 + timedelta(days=3)),
        ]

        closed = performance.match_fifo(trades)

        assert len(closed) == 1
        position = closed[0]
        assert position.shares == 12
        assert position.cost_basis == 140.0
        assert position.proceeds == 180.0
        assert position.realized_pnl == 40.0
        assert position.holding_period_days == 3
        assert position.open_trades == (trades[0].id, trades[1].id)
        assert position.close_trades == (trades[2].id,)

    def test_should_keep_remaining_lot_for_next_sell(
        self, make_trade: Callable[..., Trade]
    ) -> None:
        trades = [
            make_trade(TradeAction.BUY, "AAPL", 10, 10.0, T0),
            make_trade(TradeAction.BUY, "AAPL", 5, 20.0, T0),
            make_trade(TradeAction.SELL, "AAPL", 12, 15.0, T0),
            make_trade(TradeAction.SELL, "AAPL", 3, 25.0, T0),
        ]

        closed = performance.match_fifo(trades)

        assert [c.shares for c in closed] == [12, 3]
        assert closed[1].cost_basis == 60.0
        assert closed[1].realized_pnl == 15.0

    def test_should_match_tickers_independently(self, make_trade: Callable[..., Trade]) -> None:
        trades = [
            make_trade(TradeAction.BUY, "AAPL", 10, 10.0, T0),
            make_trade(TradeAction.BUY, "MSFT", 10, 50.0, T0),
            make_trade(TradeAction.SELL, "MSFT", 10, 40.0, T0),
        ]

        closed = performance.match_fifo(trades)

        assert len(closed) == 1
        assert closed[0].ticker == "MSFT"
        assert closed[0].realized_pnl == -100.0

    def test_should_skip_sell_without_matching_buy(
        self, make_trade: Callable[..., Trade]
    ) -> None:
        trades = [make_trade(TradeAction.SELL, "AAPL", 5, 10.0, T0)]

        assert performance.match_fifo(trades) == []

    def test_should_never_report_negative_holding_period(
        self, make_trade: Callable[..., Trade]
    ) -> None:
        trades = [
            make_trade(TradeAction.BUY, "AAPL", 1, 10.0, T0 + timedelta(days=2)),
            make_trade(TradeAction.SELL, "AAPL", 1, 12.0, T0),
        ]

        closed = performance.match_fifo(trades)

        assert closed[0].holding_period_days == 0

    def test_should_not_mutate_input_trades(self, make_trade: Callable[..., Trade]) -> None:
        trades = [
            make_trade(TradeAction.BUY, "AAPL", 10, 10.0, T0),
            make_trade(TradeAction.SELL, "AAPL", 4, 12.0, T0),
        ]

        performance.match_fifo(trades)

        assert trades[0].shares == 10


class TestTradeStatistics:
    """Test suite for win rate, profit factor and outcome statistics."""

    def test_should_calculate_win_rate(self) -> None:
        closed = [_closed(10.0), _closed(-5.0), _closed(20.0), _closed(0.0)]

        assert performance.calculate_win_rate(closed) == 0.5
        assert performance.calculate_win_rate([]) == 0.0

    def test_should_calculate_profit_factor(self) -> None:
        closed = [_closed(30.0), _closed(-10.0), _closed(-5.0)]

        assert performance.calculate_profit_factor(closed) == 2.0

    def test_should_return_infinite_profit_factor_without_losses(self) -> None:
        assert performance.calculate_profit_factor([_closed(10.0)]) == math.inf

    def test_should_return_zero_profit_factor_without_trades(self) -> None:
        assert performance.calculate_profit_factor([]) == 0.0

    def test_should_summarize_wins_and_losses(self) -> None:
        stats = performance.calculate_trade_statistics(
            [_closed(30.0), _closed(10.0), _closed(-10.0), _closed(-30.0)]
        )

        assert stats.total_trades == 4
        assert stats.winning_trades == 2
        assert stats.losing_trades == 2
        assert stats.avg_win == 20.0
        assert stats.avg_loss == -20.0
        assert stats.largest_win == 30.0
        assert stats.largest_loss == -30.0


class TestSharpeAndVolatility:
    """Test suite for risk-adjusted return metrics."""

    def test_should_report_not_enough_data_below_minimum(self) -> None:
        sharpe = performance.calculate_sharpe_ratio([0.01] * 29)

        assert sharpe == NotEnoughData(samples=29, required=30)

    def test_should_return_zero_for_constant_returns(self) -> None:
        sharpe = performance.calculate_sharpe_ratio([0.001] * 30)

        assert sharpe == SharpeValue(0.0)

    def test_should_annualize_mean_excess_over_sample_std(self) -> None:
        returns = [0.01, -0.005] * 15
        risk_free = 0.04

        sharpe = performance.calculate_sharpe_ratio(returns, risk_free)

        excess = np.array(returns) - risk_free / 252
        expected = excess.mean() / excess.std(ddof=1) * math.sqrt(252)
        assert isinstance(sharpe, SharpeValue)
        assert sharpe.value == pytest.approx(expected)

    def test_should_annualize_volatility(self) -> None:
        returns = [0.01, -0.01] * 10

        assert performance.calculate_volatility(returns) == pytest.approx(0.01 * math.sqrt(252))
        assert performance.calculate_volatility([0.01]) == 0.0


class TestDrawdowns:
    """Test suite for drawdown calculations."""

    def test_should_find_largest_peak_to_trough(self) -> None:
        values = [100.0, 120.0, 90.0, 110.0, 60.0, 130.0]

        assert performance.calculate_max_drawdown(values) == pytest.approx(0.5)

    def test_should_return_zero_for_monotonic_increase(self) -> None:
        assert performance.calculate_max_drawdown([100.0, 110.0, 120.0]) == 0.0

    def test_should_measure_current_drawdown_from_peak(self) -> None:
        assert performance.calculate_current_drawdown([100.0, 200.0, 150.0]) == 0.25
        assert performance.calculate_current_drawdown([100.0]) == 0.0


class TestSnapshots:
    """Test suite for snapshot cadence and daily returns."""

    def test_should_create_snapshot_when_history_empty(self) -> None:
        assert performance.should_create_snapshot([], T0)

    def test_should_wait_24_hours_between_snapshots(self) -> None:
        history = [_snapshot(T0, 100000.0)]

        assert not performance.should_create_snapshot(history, T0 + timedelta(hours=23))
        assert performance.should_create_snapshot(history, T0 + timedelta(hours=24))

    def test_should_compute_daily_return_against_day_old_snapshot(self) -> None:
        history = [_snapshot(T0, 100000.0), _snapshot(T0 + timedelta(hours=12), 90000.0)]

        daily = performance.calculate_daily_return(history, 110000.0, T0 + timedelta(hours=25))

        assert daily == pytest.approx(0.1)

    def test_should_return_zero_daily_return_without_old_snapshot(self) -> None:
        history = [_snapshot(T0, 100000.0)]

        assert performance.calculate_daily_return(history, 110000.0, T0) == 0.0

    def test_should_build_snapshot_frame(self) -> None:
        history = [
            _snapshot(T0, 100.0),
            _snapshot(T0 + timedelta(days=1), 120.0),
            _snapshot(T0 + timedelta(days=2), 90.0),
        ]

        frame = performance.snapshots_to_frame(history)

        assert list(frame["total_value"]) == [100.0, 120.0, 90.0]
        assert frame["drawdown_from_peak"].iloc[-1] == pytest.approx(0.25)
        assert frame.index.name == "timestamp"

    def test_should_build_empty_frame(self) -> None:
        frame = performance.snapshots_to_frame([])

        assert frame.empty
        assert "total_value" in frame.columns
