"""
Position domain model.

A position is the live, average-cost view of one ticker held by one agent.
Historical reporting (closed positions) is derived separately by FIFO matching
over the trade history.
"""

from dataclasses import dataclass
from datetime import datetime

from paper_arena.core.exceptions.trading import InvalidShareCountError, ValidationError
from paper_arena.core.types.financial import (
    ZERO,
    calculate_realized_pnl,
    calculate_trade_value,
    round_amount,
    round_percentage,
    safe_ratio,
)


@dataclass
class Position:
    """Represents an open long equity position in whole shares."""

    ticker: str
    shares: int
    avg_cost_basis: float
    total_cost_basis: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    realized_pnl: float
    high_water_mark: float
    drawdown_from_high: float
    opened_at: datetime
    last_price_update: datetime

    def __post_init__(self) -> None:
        """Validate position data after initialization."""
        if isinstance(self.shares, bool) or not isinstance(self.shares, int):
            raise InvalidShareCountError(self.shares, "must be an integer")
        if self.shares < 0:
            raise InvalidShareCountError(self.shares, "must be non-negative")
        if self.avg_cost_basis < ZERO:
            raise ValidationError(
                f"Average cost basis must be non-negative, got {self.avg_cost_basis}"
            )
        if self.total_cost_basis < ZERO:
            raise ValidationError(
                f"Total cost basis must be non-negative, got {self.total_cost_basis}"
            )

    @classmethod
    def open(cls, ticker: str, shares: int, price: float, timestamp: datetime) -> "Position":
        """Factory method to open a new position from a BUY fill.

        Args:
            ticker: Ticker symbol
            shares: Number of shares bought
            price: Fill price
            timestamp: Fill time

        Returns:
            New Position marked at the fill price
        """
        cost = calculate_trade_value(shares, price)
        return cls(
            ticker=ticker,
            shares=shares,
            avg_cost_basis=price,
            total_cost_basis=cost,
            current_price=price,
            market_value=cost,
            unrealized_pnl=ZERO,
            unrealized_pnl_percent=ZERO,
            realized_pnl=ZERO,
            high_water_mark=price,
            drawdown_from_high=ZERO,
            opened_at=timestamp,
            last_price_update=timestamp,
        )

    @property
    def is_empty(self) -> bool:
        return self.shares == 0

    def mark(self, price: float, timestamp: datetime) -> None:
        """Re-mark the position at a new market price.

        Updates market value, unrealized P&L, the high-water mark and the
        drawdown from that high.
        """
        self.current_price = price
        self.market_value = calculate_trade_value(self.shares, price)
        self.unrealized_pnl = round_amount(self.market_value - self.total_cost_basis)
        self.unrealized_pnl_percent = round_percentage(
            safe_ratio(self.unrealized_pnl, self.total_cost_basis)
        )
        if price > self.high_water_mark:
            self.high_water_mark = price
        self.drawdown_from_high = round_percentage(
            safe_ratio(self.high_water_mark - price, self.high_water_mark)
        )
        self.last_price_update = timestamp

    def add_shares(self, shares: int, price: float, timestamp: datetime) -> None:
        """Add a BUY fill using weighted average cost."""
        cost = calculate_trade_value(shares, price)
        self.total_cost_basis = round_amount(self.total_cost_basis + cost)
        self.shares += shares
        self.avg_cost_basis = self.total_cost_basis / self.shares
        self.mark(price, timestamp)

    def remove_shares(self, shares: int, price: float, timestamp: datetime) -> float:
        """Apply a SELL fill and return the realized P&L.

        The total cost basis shrinks proportionally to the fraction sold, so
        the average cost of the remaining shares is unchanged.

        Raises:
            InvalidShareCountError: If more shares are sold than held
        """
        if shares > self.shares:
            raise InvalidShareCountError(shares, f"exceeds held shares ({self.shares})")

        realized = calculate_realized_pnl(self.avg_cost_basis, price, shares)
        sold_fraction = shares / self.shares
        self.total_cost_basis = round_amount(self.total_cost_basis * (1 - sold_fraction))
        self.shares -= shares
        self.realized_pnl = round_amount(self.realized_pnl + realized)
        if self.shares == 0:
            self.total_cost_basis = ZERO
        self.mark(price, timestamp)
        return realized

    def weight(self, total_value: float) -> float:
        """Share of the portfolio's total value held in this position."""
        return safe_ratio(self.market_value, total_value)
