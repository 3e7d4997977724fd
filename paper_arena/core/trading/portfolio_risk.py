"""
Portfolio risk management.

Drives the portfolio status machine from drawdown:
active -> paused -> liquidated. Liquidated is terminal and nothing here
reverses a transition automatically.
"""

from datetime import datetime

from loguru import logger

from paper_arena.core.enums import PortfolioStatus
from paper_arena.core.exceptions.trading import PortfolioInactiveError
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.rules import RiskManagementRules
from paper_arena.core.types.financial import ZERO


class PortfolioRisk:
    """Portfolio risk management.

    Handles drawdown-driven pausing and liquidation and explicit operator
    resumption.
    """

    def __init__(self, portfolio: AgentPortfolio, rules: RiskManagementRules | None = None):
        self.portfolio = portfolio
        self.rules = rules or RiskManagementRules()

    def evaluate_status(self) -> PortfolioStatus:
        """Apply drawdown thresholds and return the (possibly new) status."""
        portfolio = self.portfolio
        if portfolio.status.is_terminal:
            return portfolio.status

        drawdown = portfolio.current_drawdown
        if drawdown >= self.rules.max_drawdown_before_liquidate:
            self._transition(PortfolioStatus.LIQUIDATED, drawdown)
        elif drawdown >= self.rules.max_drawdown_before_pause:
            if portfolio.status == PortfolioStatus.ACTIVE:
                self._transition(PortfolioStatus.PAUSED, drawdown)
        return portfolio.status

    def resume(self, now: datetime) -> None:
        """Reactivate a paused portfolio.

        The peak value is re-based to the current total value so that the
        drawdown which caused the pause does not immediately pause it again.
        Max drawdown is kept.

        Raises:
            PortfolioInactiveError: If the portfolio is liquidated
        """
        portfolio = self.portfolio
        if portfolio.status.is_terminal:
            raise PortfolioInactiveError(portfolio.agent_id, portfolio.status)
        if portfolio.status == PortfolioStatus.ACTIVE:
            return

        portfolio.peak_value = portfolio.total_value
        portfolio.current_drawdown = ZERO
        portfolio.status = PortfolioStatus.ACTIVE
        portfolio.updated_at = now
        logger.info(f"Portfolio {portfolio.agent_id} resumed by operator")

    def _transition(self, status: PortfolioStatus, drawdown: float) -> None:
        logger.warning(
            f"Portfolio {self.portfolio.agent_id} {self.portfolio.status} -> {status} "
            f"(drawdown {drawdown * 100:.1f}%)"
        )
        self.portfolio.status = status
