"""
Whole-system trading state.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from paper_arena.core.constants import STATE_VERSION
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.records import ErrorLogEntry
from paper_arena.core.models.rules import PositionSizingRules, RiskManagementRules
from paper_arena.core.models.trade import Trade
from paper_arena.core.types.financial import round_amount


@dataclass
class TradingSystemState:
    """All portfolios plus system-wide counters and rules."""

    initial_cash: float
    start_date: datetime
    last_updated: datetime
    portfolios: dict[str, AgentPortfolio] = field(default_factory=dict)
    position_sizing_rules: PositionSizingRules = field(default_factory=PositionSizingRules)
    risk_management_rules: RiskManagementRules = field(default_factory=RiskManagementRules)
    version: int = STATE_VERSION
    is_enabled: bool = True
    total_trades: int = 0
    total_volume: float = 0.0
    most_traded_stocks: dict[str, int] = field(default_factory=dict)
    system_errors: list[ErrorLogEntry] = field(default_factory=list)
    counters_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def record_trade(self, trade: Trade) -> None:
        """Update system counters for an executed trade."""
        with self.counters_lock:
            self.total_trades += 1
            self.total_volume = round_amount(self.total_volume + trade.total_value)
            self.most_traded_stocks[trade.ticker] = self.most_traded_stocks.get(trade.ticker, 0) + 1
            self.last_updated = trade.timestamp

    def top_traded(self, limit: int = 10) -> list[tuple[str, int]]:
        with self.counters_lock:
            return Counter(self.most_traded_stocks).most_common(limit)

    def get_portfolio(self, agent_id: str) -> AgentPortfolio:
        """Return the portfolio for agent_id.

        Raises:
            KeyError: If the agent is unknown
        """
        try:
            return self.portfolios[agent_id]
        except KeyError:
            raise KeyError(f"Unknown agent: {agent_id}") from None
