"""
End-to-end trading flow over a persisted service.
"""

import asyncio
import json

import pytest

from paper_arena.core.enums import DebateWinner, PortfolioStatus, Recommendation, TradeAction
from paper_arena.core.models.decision import DebateOutcome, Thesis
from paper_arena.core.trading.service import TradingService

from tests.conftest import FakeClock


def _cycle(
    service: TradingService,
    recommendation: Recommendation,
    confidence: float,
    winner: DebateWinner,
    margin: float,
    price: float,
    agent_id: str = "warren",
    ticker: str = "AAPL",
):
    return service.run_cycle(
        agent_id,
        Thesis(ticker, recommendation, confidence),
        DebateOutcome(winner, margin),
        price,
        service.clock(),
    )


class TestTradingFlow:
    """A week in the life of one agent."""

    def test_should_buy_hold_then_sell_at_profit(
        self, service: TradingService, clock: FakeClock
    ) -> None:
        bought = _cycle(service, Recommendation.STRONG_BUY, 80.0, DebateWinner.BULL, 25.0, 50.0)

        assert bought.decision.action == TradeAction.BUY
        assert bought.decision.confidence == 90.0
        assert bought.trade is not None
        assert bought.trade.shares == 360
        portfolio = service.get_portfolio("warren")
        assert portfolio.current_cash == 82000.0

        clock.advance(days=1)
        service.update_position_prices({"AAPL": 55.0})
        clock.advance(days=1)
        service.update_position_prices({"AAPL": 60.0})

        held = _cycle(service, Recommendation.STRONG_SELL, 70.0, DebateWinner.BULL, 15.0, 60.0)

        assert held.decision.action == TradeAction.HOLD
        assert held.decision.reasoning == "Lost debate - holding position"
        assert portfolio.positions["AAPL"].shares == 360
        assert portfolio.total_value == 103600.0
        assert portfolio.total_return == pytest.approx(0.036)

        clock.advance(minutes=5)
        sold = _cycle(service, Recommendation.STRONG_SELL, 70.0, DebateWinner.BEAR, 15.0, 60.0)

        assert sold.trade is not None
        assert sold.trade.realized_pnl == pytest.approx(3600.0)
        assert portfolio.positions == {}
        assert portfolio.current_cash == 103600.0
        assert portfolio.win_rate == 1.0
        assert portfolio.total_trades == 1
        assert len(portfolio.performance_history) == 3

    def test_should_pause_after_drawdown_and_resume(
        self, service: TradingService, clock: FakeClock
    ) -> None:
        portfolio = service.get_portfolio("warren")
        _cycle(service, Recommendation.STRONG_BUY, 100.0, DebateWinner.BULL, 25.0, 50.0)
        assert portfolio.positions["AAPL"].shares == 400

        # losses elsewhere in the book
        portfolio.current_cash = 50000.0
        service.update_position_prices({"AAPL": 40.0}, agent_id="warren")
        assert portfolio.status == PortfolioStatus.PAUSED

        blocked = _cycle(service, Recommendation.STRONG_BUY, 100.0, DebateWinner.BULL, 25.0, 40.0)
        assert blocked.decision.action == TradeAction.HOLD
        assert blocked.decision.confidence == 0.0

        service.resume_portfolio("warren")
        clock.advance(minutes=1)
        resumed = _cycle(
            service, Recommendation.STRONG_BUY, 60.0, DebateWinner.BULL, 25.0, 100.0, ticker="MSFT"
        )

        assert portfolio.status == PortfolioStatus.ACTIVE
        assert resumed.executed

    def test_should_survive_restart(self, service: TradingService, clock: FakeClock) -> None:
        _cycle(service, Recommendation.STRONG_BUY, 80.0, DebateWinner.BULL, 25.0, 50.0)
        _cycle(
            service, Recommendation.BUY, 80.0, DebateWinner.BULL, 15.0, 50.0, agent_id="cathie"
        )
        exported = json.loads(service.export_state())

        restarted = TradingService(
            service.settings, service.repository, locks=service.locks, clock=clock
        )
        restarted.load_or_initialize()

        assert json.loads(restarted.export_state()) == exported
        assert restarted.get_portfolio("cathie").positions["AAPL"].shares == 340

    @pytest.mark.asyncio
    async def test_should_run_agents_concurrently(self, service: TradingService) -> None:
        assert service.state is not None
        agent_ids = list(service.state.portfolios)

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    _cycle,
                    service,
                    Recommendation.STRONG_BUY,
                    80.0,
                    DebateWinner.BULL,
                    25.0,
                    50.0,
                    agent_id,
                )
                for agent_id in agent_ids
            )
        )

        assert all(result.executed for result in results)
        assert service.state.total_trades == len(agent_ids)
        assert service.state.most_traded_stocks == {"AAPL": len(agent_ids)}
        assert all(
            service.get_portfolio(agent_id).positions["AAPL"].shares == 360
            for agent_id in agent_ids
        )
