"""
Performance analytics.

Pure functions over trade and snapshot history: FIFO round-trip matching,
trade outcome statistics, Sharpe ratio, volatility and drawdowns. Nothing in
this module mutates its inputs.
"""

import math
from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

import numpy as np
import pandas as pd
from loguru import logger

from paper_arena.core.constants import (
    DEFAULT_RISK_FREE_RATE,
    FIFO_MAX_ITERATIONS,
    MIN_SHARPE_SAMPLES,
    NEGLIGIBLE_STD,
    SNAPSHOT_INTERVAL_HOURS,
    TRADING_DAYS_PER_YEAR,
)
from paper_arena.core.models.decision import ClosedPosition
from paper_arena.core.models.records import PerformanceSnapshot
from paper_arena.core.models.trade import Trade
from paper_arena.core.types import NotEnoughData, SharpeRatio, SharpeValue
from paper_arena.core.types.financial import ZERO, round_amount, safe_ratio


@dataclass(frozen=True)
class TradeStatistics:
    """Outcome counters over closed positions."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    avg_win: float = ZERO
    avg_loss: float = ZERO
    largest_win: float = ZERO
    largest_loss: float = ZERO


@dataclass
class _OpenLot:
    trade_id: str
    shares: int
    price: float
    timestamp: datetime


def match_fifo(trades: Iterable[Trade]) -> list[ClosedPosition]:
    """Match sells against earlier buys of the same ticker, first in first out.

    Each SELL produces one ClosedPosition covering the shares it could be
    matched against. Matching per sell stops after FIFO_MAX_ITERATIONS lots,
    which only happens on corrupted history.

    Args:
        trades: Trade history in execution order

    Returns:
        Closed positions in the order their closing sells were executed

    Examples:
        Buying 10 @ 10 and 5 @ 20 then selling 12 @ 15 closes 12 shares
        with cost basis 10*10 + 2*20 = 140 and realized P&L 180 - 140 = 40.
    """
    open_lots: dict[str, deque[_OpenLot]] = defaultdict(deque)
    closed: list[ClosedPosition] = []

    for trade in trades:
        if trade.is_buy:
            open_lots[trade.ticker].append(
                _OpenLot(trade.id, trade.shares, trade.price, trade.timestamp)
            )
            continue

        lots = open_lots[trade.ticker]
        shares_to_match = trade.shares
        cost_basis = ZERO
        matched_from: list[_OpenLot] = []
        iterations = 0

        while shares_to_match > 0 and lots and iterations < FIFO_MAX_ITERATIONS:
            iterations += 1
            lot = lots[0]
            if lot.shares <= 0:
                lots.popleft()
                continue

            match_shares = min(shares_to_match, lot.shares)
            cost_basis += match_shares * lot.price
            shares_to_match -= match_shares
            matched_from.append(lot)

            lot.shares -= match_shares
            if lot.shares <= 0:
                lots.popleft()

        if iterations >= FIFO_MAX_ITERATIONS:
            logger.warning(
                f"FIFO matching hit iteration cap for {trade.ticker} - possible data corruption"
            )

        if not matched_from:
            continue

        matched_shares = trade.shares - shares_to_match
        proceeds = matched_shares * trade.price
        realized_pnl = proceeds - cost_basis
        open_date = matched_from[0].timestamp
        holding_days = max(0, (trade.timestamp - open_date).days)

        closed.append(
            ClosedPosition(
                ticker=trade.ticker,
                shares=matched_shares,
                cost_basis=round_amount(cost_basis),
                proceeds=round_amount(proceeds),
                realized_pnl=round_amount(realized_pnl),
                realized_pnl_percent=safe_ratio(realized_pnl, cost_basis),
                open_date=open_date,
                close_date=trade.timestamp,
                holding_period_days=holding_days,
                open_trades=tuple(dict.fromkeys(lot.trade_id for lot in matched_from)),
                close_trades=(trade.id,),
            )
        )

    return closed


def calculate_win_rate(closed: Sequence[ClosedPosition]) -> float:
    """Fraction of closed positions with positive realized P&L."""
    if not closed:
        return ZERO
    return sum(1 for position in closed if position.is_win) / len(closed)


def calculate_profit_factor(closed: Sequence[ClosedPosition]) -> float:
    """Gross wins divided by gross losses.

    Returns inf when there are wins and no losses, and 0 when there are
    neither.
    """
    total_wins = sum(p.realized_pnl for p in closed if p.realized_pnl > 0)
    total_losses = abs(sum(p.realized_pnl for p in closed if p.realized_pnl < 0))
    if total_losses == ZERO:
        return math.inf if total_wins > ZERO else ZERO
    return total_wins / total_losses


def calculate_trade_statistics(closed: Sequence[ClosedPosition]) -> TradeStatistics:
    wins = [p.realized_pnl for p in closed if p.realized_pnl > 0]
    losses = [p.realized_pnl for p in closed if p.realized_pnl < 0]
    return TradeStatistics(
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=float(np.mean(wins)) if wins else ZERO,
        avg_loss=float(np.mean(losses)) if losses else ZERO,
        largest_win=max(wins) if wins else ZERO,
        largest_loss=min(losses) if losses else ZERO,
    )


def calculate_sharpe_ratio(
    returns: Sequence[float], risk_free_rate: float = DEFAULT_RISK_FREE_RATE
) -> SharpeRatio:
    """Annualized Sharpe ratio of daily returns.

    Uses the sample standard deviation of excess returns over the daily
    risk-free rate. Needs at least MIN_SHARPE_SAMPLES returns.

    Returns:
        NotEnoughData below the sample minimum, otherwise SharpeValue
        (0.0 when the deviation is negligible)
    """
    if len(returns) < MIN_SHARPE_SAMPLES:
        return NotEnoughData(samples=len(returns), required=MIN_SHARPE_SAMPLES)

    excess = np.asarray(returns, dtype=float) - risk_free_rate / TRADING_DAYS_PER_YEAR
    std = float(np.std(excess, ddof=1))
    if std < NEGLIGIBLE_STD:
        return SharpeValue(ZERO)
    return SharpeValue(float(np.mean(excess)) / std * math.sqrt(TRADING_DAYS_PER_YEAR))


def calculate_volatility(returns: Sequence[float]) -> float:
    """Annualized population standard deviation of daily returns."""
    if len(returns) < 2:
        return ZERO
    return float(np.std(np.asarray(returns, dtype=float))) * math.sqrt(TRADING_DAYS_PER_YEAR)


def calculate_max_drawdown(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline of a value series, as a fraction of the peak."""
    if len(values) < 2:
        return ZERO
    series = pd.Series(values, dtype=float)
    peaks = series.cummax()
    drawdowns = ((peaks - series) / peaks).where(peaks > 0, ZERO)
    return max(ZERO, float(drawdowns.max()))


def calculate_current_drawdown(values: Sequence[float]) -> float:
    """Decline of the last value from the series peak."""
    if len(values) < 2:
        return ZERO
    peak = max(values)
    if peak <= 0:
        return ZERO
    return (peak - values[-1]) / peak


def calculate_daily_return(
    history: Sequence[PerformanceSnapshot], total_value: float, now: datetime
) -> float:
    """Return since the most recent snapshot taken at least 24 hours ago."""
    cutoff = now - timedelta(hours=SNAPSHOT_INTERVAL_HOURS)
    for snapshot in reversed(history):
        if snapshot.timestamp <= cutoff:
            if snapshot.total_value > 0:
                return (total_value - snapshot.total_value) / snapshot.total_value
            return ZERO
    return ZERO


def should_create_snapshot(history: Sequence[PerformanceSnapshot], now: datetime) -> bool:
    """A snapshot is due when none exists or the last is at least 24 hours old."""
    if not history:
        return True
    return now - history[-1].timestamp >= timedelta(hours=SNAPSHOT_INTERVAL_HOURS)


def snapshots_to_frame(history: Sequence[PerformanceSnapshot]) -> pd.DataFrame:
    """Snapshot history as a timestamp-indexed DataFrame for reporting."""
    columns = [
        "total_value",
        "cash",
        "positions_value",
        "total_return",
        "daily_return",
        "volatility",
        "sharpe_ratio",
        "max_drawdown",
        "current_drawdown",
        "num_positions",
    ]
    if not history:
        return pd.DataFrame(columns=columns, index=pd.DatetimeIndex([], name="timestamp"))

    frame = pd.DataFrame(
        [{name: getattr(snapshot, name) for name in columns} for snapshot in history],
        index=pd.DatetimeIndex([snapshot.timestamp for snapshot in history], name="timestamp"),
    )
    frame["drawdown_from_peak"] = 1 - frame["total_value"] / frame["total_value"].cummax()
    return frame
