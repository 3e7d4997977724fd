"""
Portfolio metrics.

Refreshes the derived statistics of an AgentPortfolio after every mutation
using the pure functions in paper_arena.core.analytics.performance.
"""

from datetime import datetime

from paper_arena.core.analytics import performance
from paper_arena.core.constants import DEFAULT_RISK_FREE_RATE
from paper_arena.core.models.decision import ClosedPosition
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.records import PerformanceSnapshot
from paper_arena.core.types import NotEnoughData, SharpeValue
from paper_arena.core.types.financial import ZERO, round_amount, round_percentage, safe_ratio


class PortfolioMetrics:
    """Portfolio metrics and calculations.

    Handles total value, returns, drawdowns, trade-outcome statistics and
    the daily performance snapshot.
    """

    def __init__(self, portfolio: AgentPortfolio, risk_free_rate: float = DEFAULT_RISK_FREE_RATE):
        self.portfolio = portfolio
        self.risk_free_rate = risk_free_rate

    def refresh(self, now: datetime) -> None:
        """Recompute every derived field and append a snapshot when one is due."""
        portfolio = self.portfolio

        total_value = portfolio.refresh_total_value()
        portfolio.total_return_dollar = round_amount(total_value - portfolio.initial_cash)
        portfolio.total_return = round_percentage(
            safe_ratio(portfolio.total_return_dollar, portfolio.initial_cash)
        )

        if total_value > portfolio.peak_value:
            portfolio.peak_value = total_value
        portfolio.current_drawdown = safe_ratio(
            portfolio.peak_value - total_value, portfolio.peak_value
        )
        portfolio.max_drawdown = max(portfolio.max_drawdown, portfolio.current_drawdown)

        self._refresh_trade_statistics()

        history = portfolio.performance_history
        returns = [snapshot.daily_return for snapshot in history]
        daily_return: float | None = None
        if performance.should_create_snapshot(history, now):
            daily_return = performance.calculate_daily_return(history, total_value, now)
            returns.append(daily_return)

        # risk metrics cover the snapshot about to be taken
        portfolio.sharpe_ratio = performance.calculate_sharpe_ratio(returns, self.risk_free_rate)
        if isinstance(portfolio.sharpe_ratio, SharpeValue):
            portfolio.volatility = performance.calculate_volatility(returns)

        if daily_return is not None:
            history.append(self.create_snapshot(now, daily_return))

        portfolio.updated_at = now

    def closed_positions(self) -> list[ClosedPosition]:
        return performance.match_fifo(self.portfolio.trades)

    def create_snapshot(
        self, now: datetime, daily_return: float | None = None
    ) -> PerformanceSnapshot:
        """Build a snapshot of the portfolio as of now.

        The daily return is measured against the existing history unless given.
        """
        portfolio = self.portfolio
        if daily_return is None:
            daily_return = performance.calculate_daily_return(
                portfolio.performance_history, portfolio.total_value, now
            )
        largest = portfolio.largest_position()
        sharpe = portfolio.sharpe_ratio

        return PerformanceSnapshot(
            timestamp=now,
            total_value=portfolio.total_value,
            cash=portfolio.current_cash,
            positions_value=portfolio.positions_value(),
            total_return=portfolio.total_return,
            daily_return=daily_return,
            volatility=portfolio.volatility,
            sharpe_ratio=ZERO if isinstance(sharpe, NotEnoughData) else sharpe.value,
            max_drawdown=portfolio.max_drawdown,
            current_drawdown=portfolio.current_drawdown,
            num_positions=len(portfolio.positions),
            largest_position=largest.ticker if largest else None,
            largest_position_percent=largest.weight(portfolio.total_value) if largest else ZERO,
        )

    def _refresh_trade_statistics(self) -> None:
        portfolio = self.portfolio
        closed = self.closed_positions()
        stats = performance.calculate_trade_statistics(closed)

        portfolio.total_trades = stats.total_trades
        portfolio.winning_trades = stats.winning_trades
        portfolio.losing_trades = stats.losing_trades
        portfolio.avg_win = stats.avg_win
        portfolio.avg_loss = stats.avg_loss
        portfolio.largest_win = stats.largest_win
        portfolio.largest_loss = stats.largest_loss
        portfolio.win_rate = performance.calculate_win_rate(closed)
        portfolio.profit_factor = performance.calculate_profit_factor(closed)
