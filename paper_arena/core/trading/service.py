"""
Trading service.

Orchestrates one agent cycle at a time: the decision engine proposes, the
execution ledger applies, and every mutation is persisted through the
state repository. Typed errors raised during a cycle are recorded in the
agent's error log and returned with a rejected decision, so one agent's bad
cycle never halts the others.
"""

import dataclasses
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from paper_arena.core.config import Settings, get_settings
from paper_arena.core.constants import DEFAULT_AGENTS
from paper_arena.core.enums import Methodology, PortfolioStatus, TradeAction
from paper_arena.core.exceptions.trading import (
    DataCorruptionError,
    LockTimeoutError,
    TradingError,
    UpstreamAPIError,
)
from paper_arena.core.models.decision import ClosedPosition, DebateOutcome, Thesis, TradeDecision
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.records import CorporateAction, ErrorLogEntry
from paper_arena.core.models.rules import PositionSizingRules, RiskManagementRules
from paper_arena.core.models.system_state import TradingSystemState
from paper_arena.core.models.trade import Trade
from paper_arena.core.trading.corporate_actions import CorporateActionProcessor
from paper_arena.core.trading.decision_engine import DecisionEngine
from paper_arena.core.trading.ledger import ExecutionLedger
from paper_arena.core.trading.lock import LockRegistry
from paper_arena.core.trading.market_hours import MarketHoursCalendar
from paper_arena.core.trading.portfolio_metrics import PortfolioMetrics
from paper_arena.core.trading.portfolio_risk import PortfolioRisk
from paper_arena.core.trading.position_sizing import PositionSizingPolicy
from paper_arena.core.trading.price_validation import PriceValidator
from paper_arena.core.types import SharpeValue
from paper_arena.core.utils.clock import Clock, as_utc, utc_now
from paper_arena.infrastructure.persistence import StateRepository, create_state_store

AgentProfile = tuple[str, str, str]


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one decision/execution cycle."""

    decision: TradeDecision
    trade: Trade | None = None
    error: ErrorLogEntry | None = None

    @property
    def executed(self) -> bool:
        return self.trade is not None


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    agent_id: str
    agent_name: str
    methodology: Methodology
    status: PortfolioStatus
    total_value: float
    total_return: float
    total_return_dollar: float
    sharpe_ratio: float | None
    win_rate: float
    max_drawdown: float
    total_trades: int


class TradingService:
    """Owns the system state and runs agent cycles against it."""

    def __init__(
        self,
        settings: Settings,
        repository: StateRepository,
        locks: LockRegistry | None = None,
        clock: Clock = utc_now,
        agents: tuple[AgentProfile, ...] = DEFAULT_AGENTS,
    ):
        self.settings = settings
        self.repository = repository
        self.locks = locks or repository.locks
        self.clock = clock
        self.agents = agents
        self.state: TradingSystemState | None = None
        self._system_lock = threading.Lock()

        self.market_hours = MarketHoursCalendar()
        self.price_validator = PriceValidator(stale_after_seconds=settings.stale_price_seconds)
        self.engine = DecisionEngine(
            sizing_policy=PositionSizingPolicy(PositionSizingRules.from_settings(settings)),
            price_validator=self.price_validator,
            market_hours=self.market_hours,
            enforce_market_hours=settings.enforce_market_hours,
            clock=clock,
        )
        self.ledger = ExecutionLedger(
            locks=self.locks,
            risk_rules=RiskManagementRules.from_settings(settings),
            market_hours=self.market_hours,
            enforce_market_hours=settings.enforce_market_hours,
            risk_free_rate=settings.risk_free_rate,
            on_commit=self._persist_portfolio,
            clock=clock,
        )
        self.corporate_actions = CorporateActionProcessor(self.ledger)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, clock: Clock = utc_now
    ) -> "TradingService":
        """Build a service with the store backend selected by settings."""
        settings = settings or get_settings()
        locks = LockRegistry(
            per_agent_locks=settings.per_agent_locks, timeout=settings.lock_timeout_seconds
        )
        repository = StateRepository(create_state_store(settings), locks, clock=clock)
        return cls(settings, repository, locks=locks, clock=clock)

    # State lifecycle

    def initialize_system(self) -> TradingSystemState:
        """Create one all-cash portfolio per roster agent and persist it."""
        now = self.clock()
        portfolios = {
            agent_id: AgentPortfolio.create(
                agent_id, name, Methodology(methodology), self.settings.initial_cash, now
            )
            for agent_id, name, methodology in self.agents
        }
        state = TradingSystemState(
            initial_cash=self.settings.initial_cash,
            start_date=now,
            last_updated=now,
            portfolios=portfolios,
            position_sizing_rules=PositionSizingRules.from_settings(self.settings),
            risk_management_rules=RiskManagementRules.from_settings(self.settings),
        )
        self._adopt(state)
        self.repository.save_all(state)
        logger.info(
            f"Initialized trading system with {len(portfolios)} agents "
            f"at ${self.settings.initial_cash:,.2f} each"
        )
        return state

    def load_or_initialize(self) -> TradingSystemState:
        """Adopt the stored state, or start fresh when none exists.

        A stored document that fails validation is discarded: the fresh state
        records the DATA_CORRUPTION error in its system error log.
        """
        try:
            state = self.repository.load()
        except DataCorruptionError as e:
            logger.error(f"Discarding corrupted state: {e.message}")
            state = self.initialize_system()
            with self._system_lock:
                state.system_errors.append(ErrorLogEntry.from_error(e, self.clock()))
            self.repository.save_all(state)
            return state

        if state is None:
            return self.initialize_system()

        self._adopt(state)
        logger.info(f"Loaded trading system with {len(state.portfolios)} agents")
        return state

    def export_state(self) -> str:
        return self.repository.export_state(self._require_state())

    def import_state(self, text: str | bytes) -> TradingSystemState:
        """Replace the live state with an exported document.

        Raises:
            DataCorruptionError: If the document fails validation; the live
                state is left untouched
        """
        state = self.repository.import_state(text)
        current = self.state.portfolios if self.state else {}
        with self.locks.hold_all([*current, *state.portfolios]):
            self._adopt(state)
        self.repository.save_all(state)
        logger.info(f"Imported trading system with {len(state.portfolios)} agents")
        return state

    # Trading

    def run_cycle(
        self,
        agent_id: str,
        thesis: Thesis,
        debate: DebateOutcome,
        price: float,
        price_timestamp: datetime,
    ) -> CycleResult:
        """Decide on a thesis for one agent and execute the decision if valid.

        Raises:
            KeyError: If the agent is unknown
        """
        portfolio = self.get_portfolio(agent_id)
        decision: TradeDecision | None = None
        price_timestamp = as_utc(price_timestamp)
        try:
            decision = self.engine.decide(thesis, debate, portfolio, price, price_timestamp)

            validation = decision.price_validation
            if validation is not None and validation.is_valid:
                self.price_validator.remember(thesis.ticker, price)
            elif validation is not None:
                validation.raise_for_status()

            trade = self.ledger.execute(portfolio, decision) if decision.is_executable else None
            return CycleResult(decision=decision, trade=trade)
        except TradingError as e:
            return self._reject(portfolio, thesis, price, decision, e)
        except Exception as e:
            logger.exception(f"Unexpected failure in cycle for {agent_id}")
            wrapped = UpstreamAPIError(
                f"Unexpected error during cycle: {e}", context={"error_type": type(e).__name__}
            )
            return self._reject(portfolio, thesis, price, decision, wrapped)

    def update_position_prices(
        self, prices: Mapping[str, float], agent_id: str | None = None
    ) -> int:
        """Re-mark open positions for one agent, or every agent when agent_id is None."""
        state = self._require_state()
        portfolios = [self.get_portfolio(agent_id)] if agent_id else list(state.portfolios.values())

        for ticker, price in prices.items():
            self.price_validator.remember(ticker, price)

        return sum(self.ledger.update_position_prices(p, prices) for p in portfolios)

    def apply_split(self, agent_id: str, ticker: str, ratio: float) -> CorporateAction:
        return self.corporate_actions.apply_split(self.get_portfolio(agent_id), ticker, ratio)

    def apply_dividend(self, agent_id: str, ticker: str, amount: float) -> CorporateAction:
        return self.corporate_actions.apply_dividend(self.get_portfolio(agent_id), ticker, amount)

    def apply_ticker_change(self, agent_id: str, ticker: str, new_ticker: str) -> CorporateAction:
        return self.corporate_actions.apply_ticker_change(
            self.get_portfolio(agent_id), ticker, new_ticker
        )

    # Operator actions

    def resume_portfolio(self, agent_id: str) -> AgentPortfolio:
        """Reactivate a paused portfolio.

        Raises:
            PortfolioInactiveError: If the portfolio is liquidated
        """
        portfolio = self.get_portfolio(agent_id)
        with self.locks.hold(agent_id):
            PortfolioRisk(portfolio, self.ledger.risk_rules).resume(self.clock())
            self._persist_portfolio(portfolio)
        return portfolio

    def resolve_error(self, agent_id: str, error_id: str) -> ErrorLogEntry:
        """Mark an error log entry resolved.

        Raises:
            KeyError: If the agent or the error id is unknown
        """
        portfolio = self.get_portfolio(agent_id)
        with self.locks.hold(agent_id):
            entry = next((e for e in portfolio.error_log if e.id == error_id), None)
            if entry is None:
                raise KeyError(f"Unknown error {error_id} for agent {agent_id}")
            if not entry.resolved:
                entry.resolve(self.clock())
                self._persist_portfolio(portfolio)
        return entry

    # Queries

    def get_portfolio(self, agent_id: str) -> AgentPortfolio:
        return self._require_state().get_portfolio(agent_id)

    def closed_positions(self, agent_id: str) -> list[ClosedPosition]:
        return PortfolioMetrics(self.get_portfolio(agent_id)).closed_positions()

    def leaderboard(self) -> list[LeaderboardEntry]:
        """Rank agents by total return, best first."""
        ranked = sorted(
            self._require_state().portfolios.values(),
            key=lambda p: (p.total_return, p.total_value),
            reverse=True,
        )
        return [
            LeaderboardEntry(
                rank=rank,
                agent_id=p.agent_id,
                agent_name=p.agent_name,
                methodology=p.methodology,
                status=p.status,
                total_value=p.total_value,
                total_return=p.total_return,
                total_return_dollar=p.total_return_dollar,
                sharpe_ratio=_sharpe_or_none(p),
                win_rate=p.win_rate,
                max_drawdown=p.max_drawdown,
                total_trades=p.total_trades,
            )
            for rank, p in enumerate(ranked, start=1)
        ]

    def most_traded(self, limit: int = 10) -> list[tuple[str, int]]:
        return self._require_state().top_traded(limit)

    # Internals

    def _adopt(self, state: TradingSystemState) -> None:
        self.state = state
        self.ledger.state = state
        self.ledger.risk_rules = state.risk_management_rules
        self.engine.sizing_policy = PositionSizingPolicy(state.position_sizing_rules)

    def _require_state(self) -> TradingSystemState:
        if self.state is None:
            raise RuntimeError("Trading system is not initialized")
        return self.state

    def _persist_portfolio(self, portfolio: AgentPortfolio) -> None:
        self.repository.save_portfolio(self._require_state(), portfolio)

    def _reject(
        self,
        portfolio: AgentPortfolio,
        thesis: Thesis,
        price: float,
        decision: TradeDecision | None,
        error: TradingError,
    ) -> CycleResult:
        logger.warning(f"Cycle rejected for {portfolio.agent_id} {thesis.ticker}: {error.message}")
        entry = self._record_error(portfolio, error)

        if decision is None:
            rejected = TradeDecision(
                action=TradeAction.HOLD,
                ticker=thesis.ticker,
                shares=0,
                estimated_price=price,
                estimated_value=0.0,
                confidence=0.0,
                reasoning=error.message,
                recommendation=thesis.recommendation,
                is_valid=False,
                validation_errors=(error.message,),
                thesis_id=thesis.id,
            )
        else:
            errors = decision.validation_errors
            if error.message not in errors:
                errors = (*errors, error.message)
            rejected = dataclasses.replace(
                decision,
                action=TradeAction.HOLD,
                shares=0,
                is_valid=False,
                validation_errors=errors,
            )
        return CycleResult(decision=rejected, error=entry)

    def _record_error(self, portfolio: AgentPortfolio, error: TradingError) -> ErrorLogEntry:
        entry = ErrorLogEntry.from_error(error, self.clock())
        try:
            with self.locks.hold(portfolio.agent_id):
                portfolio.error_log.append(entry)
                self._persist_portfolio(portfolio)
        except LockTimeoutError:
            logger.error(f"Could not record {error.code} for {portfolio.agent_id}: lock busy")
            with self._system_lock:
                self._require_state().system_errors.append(entry)
        return entry


def _sharpe_or_none(portfolio: AgentPortfolio) -> float | None:
    sharpe = portfolio.sharpe_ratio
    return sharpe.value if isinstance(sharpe, SharpeValue) else None
