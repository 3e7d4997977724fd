"""
Trade domain model.

Trades are immutable once recorded. Corporate actions that restate history
(splits, ticker changes) replace a record with an adjusted copy.
"""

import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from paper_arena.core.enums import MarketSession, Recommendation, TradeAction
from paper_arena.core.exceptions.trading import (
    InvalidPriceError,
    InvalidShareCountError,
    ValidationError,
)


def new_trade_id() -> str:
    return f"trade_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class Trade:
    """Represents an executed paper trade."""

    id: str
    ticker: str
    action: TradeAction
    shares: int
    price: float
    total_value: float
    timestamp: datetime
    confidence: float
    recommendation: Recommendation
    market_status: MarketSession
    is_valid: bool = True
    validation_warnings: tuple[str, ...] = ()
    realized_pnl: float | None = None
    realized_pnl_percent: float | None = None
    thesis_id: str | None = None
    debate_id: str | None = None
    commission: float = 0.0

    def __post_init__(self) -> None:
        """Validate trade data after initialization."""
        if not self.action.is_executable:
            raise ValidationError(f"Trade action must be BUY or SELL, got {self.action}")
        if isinstance(self.shares, bool) or not isinstance(self.shares, int) or self.shares <= 0:
            raise InvalidShareCountError(self.shares)
        if self.price <= 0:
            raise InvalidPriceError(self.price, self.ticker)
        if self.commission < 0:
            raise ValidationError(f"Commission must be non-negative, got {self.commission}")
        if self.action == TradeAction.BUY and self.realized_pnl is not None:
            raise ValidationError("BUY trades carry no realized P&L")

    @property
    def is_buy(self) -> bool:
        return self.action == TradeAction.BUY

    @property
    def is_sell(self) -> bool:
        return self.action == TradeAction.SELL

    def replace(self, **changes: Any) -> "Trade":
        """Return an adjusted copy of this trade."""
        return dataclasses.replace(self, **changes)
