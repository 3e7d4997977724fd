"""
Agent portfolio state.

An AgentPortfolio is plain state: cash, open positions and append-only
history. Mutations go through the execution ledger and corporate action
processor, derived statistics are refreshed by PortfolioMetrics, and the
status machine lives in PortfolioRisk.
"""

from dataclasses import dataclass, field
from datetime import datetime

from paper_arena.core.enums import Methodology, PortfolioStatus
from paper_arena.core.exceptions.trading import PositionNotFoundError, ValidationError
from paper_arena.core.models.position import Position
from paper_arena.core.models.records import CorporateAction, ErrorLogEntry, PerformanceSnapshot
from paper_arena.core.models.trade import Trade
from paper_arena.core.types import NotEnoughData, SharpeRatio
from paper_arena.core.types.financial import ZERO, round_amount


@dataclass
class AgentPortfolio:
    """Paper portfolio owned by a single trading agent.

    Invariants:
        total_value == current_cash + sum(position.market_value) after every
        mutation, and current_cash never drops below zero.
    """

    agent_id: str
    agent_name: str
    methodology: Methodology
    initial_cash: float
    current_cash: float
    created_at: datetime
    updated_at: datetime
    total_value: float = ZERO
    total_return: float = ZERO
    total_return_dollar: float = ZERO
    win_rate: float = ZERO
    sharpe_ratio: SharpeRatio = field(default_factory=NotEnoughData)
    volatility: float = ZERO
    max_drawdown: float = ZERO
    current_drawdown: float = ZERO
    peak_value: float = ZERO
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    avg_win: float = ZERO
    avg_loss: float = ZERO
    largest_win: float = ZERO
    largest_loss: float = ZERO
    profit_factor: float = ZERO
    positions: dict[str, Position] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)
    performance_history: list[PerformanceSnapshot] = field(default_factory=list)
    error_log: list[ErrorLogEntry] = field(default_factory=list)
    corporate_actions: list[CorporateAction] = field(default_factory=list)
    status: PortfolioStatus = PortfolioStatus.ACTIVE
    last_trade_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate portfolio data after initialization."""
        if self.initial_cash <= ZERO:
            raise ValidationError(f"Initial cash must be positive, got {self.initial_cash}")
        if self.current_cash < ZERO:
            raise ValidationError(f"Cash must be non-negative, got {self.current_cash}")
        if self.total_value == ZERO:
            self.refresh_total_value()
        if self.peak_value == ZERO:
            self.peak_value = max(self.initial_cash, self.total_value)

    @classmethod
    def create(
        cls,
        agent_id: str,
        agent_name: str,
        methodology: Methodology,
        initial_cash: float,
        now: datetime,
    ) -> "AgentPortfolio":
        """Factory method for a fresh, all-cash portfolio."""
        return cls(
            agent_id=agent_id,
            agent_name=agent_name,
            methodology=methodology,
            initial_cash=initial_cash,
            current_cash=initial_cash,
            created_at=now,
            updated_at=now,
            total_value=initial_cash,
            peak_value=initial_cash,
        )

    def positions_value(self) -> float:
        return round_amount(sum((p.market_value for p in self.positions.values()), ZERO))

    def refresh_total_value(self) -> float:
        """Recompute total_value from cash and marked positions."""
        self.total_value = round_amount(self.current_cash + self.positions_value())
        return self.total_value

    def has_position(self, ticker: str) -> bool:
        return ticker in self.positions

    def get_position(self, ticker: str) -> Position:
        """Return the open position for ticker.

        Raises:
            PositionNotFoundError: If no position is open
        """
        position = self.positions.get(ticker)
        if position is None:
            raise PositionNotFoundError(ticker)
        return position

    def largest_position(self) -> Position | None:
        if not self.positions:
            return None
        return max(self.positions.values(), key=lambda p: p.market_value)

    def unresolved_errors(self) -> list[ErrorLogEntry]:
        return [entry for entry in self.error_log if not entry.resolved]
