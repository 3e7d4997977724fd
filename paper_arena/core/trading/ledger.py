"""
Execution ledger.

Applies one TradeDecision to one AgentPortfolio under that agent's lock.
Every check that can fail runs before the first mutation; anything that
fails after mutation began rolls the portfolio back to its checkpoint.
"""

import copy
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from datetime import datetime, timedelta

from loguru import logger

from paper_arena.core.constants import (
    DEFAULT_RISK_FREE_RATE,
    DUPLICATE_LOOKBACK_TRADES,
    DUPLICATE_PRICE_TOLERANCE,
    DUPLICATE_WINDOW_SECONDS,
)
from paper_arena.core.enums import TradeAction
from paper_arena.core.exceptions.trading import (
    DuplicateTradeError,
    InsufficientCashError,
    MarketClosedError,
    PortfolioInactiveError,
    ValidationError,
)
from paper_arena.core.models.decision import TradeDecision
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.position import Position
from paper_arena.core.models.rules import RiskManagementRules
from paper_arena.core.models.system_state import TradingSystemState
from paper_arena.core.models.trade import Trade, new_trade_id
from paper_arena.core.trading.lock import LockRegistry
from paper_arena.core.trading.market_hours import MarketHoursCalendar, MarketStatus
from paper_arena.core.trading.portfolio_metrics import PortfolioMetrics
from paper_arena.core.trading.portfolio_risk import PortfolioRisk
from paper_arena.core.types.financial import (
    calculate_trade_value,
    is_valid_price,
    round_amount,
    safe_ratio,
)
from paper_arena.core.utils.clock import Clock, utc_now
from paper_arena.core.utils.decorators import log_trades
from paper_arena.core.utils.validation import validate_price, validate_share_count

CommitHook = Callable[[AgentPortfolio], None]


@contextmanager
def portfolio_transaction(portfolio: AgentPortfolio) -> Generator[AgentPortfolio]:
    """Checkpoint a portfolio and restore it if the block raises."""
    saved = dict(vars(portfolio))
    saved["positions"] = copy.deepcopy(portfolio.positions)
    for name in ("trades", "performance_history", "error_log", "corporate_actions"):
        saved[name] = list(getattr(portfolio, name))

    try:
        yield portfolio
    except Exception:
        vars(portfolio).update(saved)
        logger.warning(f"Rolled back portfolio {portfolio.agent_id} to checkpoint")
        raise


class ExecutionLedger:
    """Applies trade decisions to portfolios atomically."""

    def __init__(
        self,
        locks: LockRegistry | None = None,
        state: TradingSystemState | None = None,
        risk_rules: RiskManagementRules | None = None,
        market_hours: MarketHoursCalendar | None = None,
        enforce_market_hours: bool = False,
        risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
        on_commit: CommitHook | None = None,
        clock: Clock = utc_now,
    ):
        self.locks = locks or LockRegistry()
        self.state = state
        self.risk_rules = risk_rules or (state.risk_management_rules if state else None)
        self.market_hours = market_hours or MarketHoursCalendar()
        self.enforce_market_hours = enforce_market_hours
        self.risk_free_rate = risk_free_rate
        self.on_commit = on_commit
        self.clock = clock

    @log_trades
    def execute(self, portfolio: AgentPortfolio, decision: TradeDecision) -> Trade | None:
        """Execute a decision against a portfolio.

        Args:
            portfolio: Portfolio to mutate
            decision: BUY or SELL decision; HOLD is a no-op

        Returns:
            The recorded Trade, or None for HOLD and duplicate submissions

        Raises:
            PortfolioInactiveError: If the portfolio is liquidated
            InvalidPriceError: If the price is not a positive finite number
            InvalidShareCountError: If shares is not a positive integer or exceeds holdings
            MarketClosedError: If market hours are enforced and the market is closed
            InsufficientCashError: If a BUY costs more than the available cash
            PositionNotFoundError: If a SELL has no open position
            LockTimeoutError: If the agent's lock cannot be acquired in time
        """
        if decision.action == TradeAction.HOLD:
            logger.debug(f"HOLD for {portfolio.agent_id} {decision.ticker}: nothing to execute")
            return None

        with self.locks.hold(portfolio.agent_id):
            now = self.clock()
            market_status = self._validate(portfolio, decision, now)

            try:
                self._check_duplicate(portfolio, decision, now)
            except DuplicateTradeError as e:
                logger.info(f"Ignoring duplicate submission for {portfolio.agent_id}: {e}")
                return None

            with portfolio_transaction(portfolio):
                if decision.action == TradeAction.BUY:
                    trade = self._apply_buy(portfolio, decision, now, market_status)
                else:
                    trade = self._apply_sell(portfolio, decision, now, market_status)
                portfolio.trades.append(trade)
                portfolio.last_trade_at = now
                self.refresh_metrics(portfolio, now)

            self._record_system_trade(trade)
            self.commit(portfolio)
            return trade

    def update_position_prices(self, portfolio: AgentPortfolio, prices: Mapping[str, float]) -> int:
        """Re-mark open positions at new prices.

        Non-positive or non-finite prices and tickers without an open
        position are ignored.

        Returns:
            Number of positions re-marked
        """
        with self.locks.hold(portfolio.agent_id):
            now = self.clock()
            updated = 0
            with portfolio_transaction(portfolio):
                for ticker, position in portfolio.positions.items():
                    price = prices.get(ticker)
                    if price is None or not is_valid_price(price):
                        continue
                    position.mark(price, now)
                    updated += 1
                self.refresh_metrics(portfolio, now)

            logger.debug(f"Re-marked {updated} positions for {portfolio.agent_id}")
            self.commit(portfolio)
            return updated

    def _validate(
        self, portfolio: AgentPortfolio, decision: TradeDecision, now: datetime
    ) -> MarketStatus:
        if portfolio.status.is_terminal:
            raise PortfolioInactiveError(portfolio.agent_id, portfolio.status)

        validate_price(decision.estimated_price, decision.ticker)
        validate_share_count(decision.shares)

        market_status = self.market_hours.status(now)
        if self.enforce_market_hours and not market_status.is_open:
            raise MarketClosedError(market_status.session, market_status.describe())

        if decision.action == TradeAction.BUY:
            cost = calculate_trade_value(decision.shares, decision.estimated_price)
            if portfolio.current_cash < cost:
                raise InsufficientCashError(cost, portfolio.current_cash, f"BUY {decision.ticker}")
        elif decision.action == TradeAction.SELL:
            position = portfolio.get_position(decision.ticker)
            validate_share_count(decision.shares, held=position.shares)
        else:
            raise ValidationError(f"Unsupported action: {decision.action}")

        return market_status

    @staticmethod
    def _check_duplicate(portfolio: AgentPortfolio, decision: TradeDecision, now: datetime) -> None:
        window = timedelta(seconds=DUPLICATE_WINDOW_SECONDS)
        for trade in portfolio.trades[-DUPLICATE_LOOKBACK_TRADES:]:
            if (
                trade.ticker == decision.ticker
                and trade.action == decision.action
                and trade.shares == decision.shares
                and abs(trade.price - decision.estimated_price) < DUPLICATE_PRICE_TOLERANCE
                and abs(now - trade.timestamp) <= window
            ):
                raise DuplicateTradeError(
                    decision.ticker, decision.action, decision.shares, decision.estimated_price
                )

    @staticmethod
    def _apply_buy(
        portfolio: AgentPortfolio,
        decision: TradeDecision,
        now: datetime,
        market_status: MarketStatus,
    ) -> Trade:
        price = decision.estimated_price
        value = calculate_trade_value(decision.shares, price)

        portfolio.current_cash = round_amount(portfolio.current_cash - value)
        position = portfolio.positions.get(decision.ticker)
        if position is None:
            portfolio.positions[decision.ticker] = Position.open(
                decision.ticker, decision.shares, price, now
            )
        else:
            position.add_shares(decision.shares, price, now)

        return _build_trade(decision, value, now, market_status)

    @staticmethod
    def _apply_sell(
        portfolio: AgentPortfolio,
        decision: TradeDecision,
        now: datetime,
        market_status: MarketStatus,
    ) -> Trade:
        price = decision.estimated_price
        position = portfolio.get_position(decision.ticker)
        cost_of_sold = position.avg_cost_basis * decision.shares
        proceeds = calculate_trade_value(decision.shares, price)

        realized = position.remove_shares(decision.shares, price, now)
        portfolio.current_cash = round_amount(portfolio.current_cash + proceeds)
        if position.is_empty:
            del portfolio.positions[decision.ticker]

        return _build_trade(
            decision,
            proceeds,
            now,
            market_status,
            realized_pnl=realized,
            realized_pnl_percent=safe_ratio(realized, cost_of_sold),
        )

    def refresh_metrics(self, portfolio: AgentPortfolio, now: datetime) -> None:
        """Recompute derived metrics and apply the drawdown status machine."""
        PortfolioMetrics(portfolio, self.risk_free_rate).refresh(now)
        PortfolioRisk(portfolio, self.risk_rules).evaluate_status()

    def _record_system_trade(self, trade: Trade) -> None:
        if self.state is None:
            return
        self.state.record_trade(trade)

    def commit(self, portfolio: AgentPortfolio) -> None:
        """Hand a mutated portfolio to the persistence hook."""
        if self.on_commit is not None:
            self.on_commit(portfolio)


def _build_trade(
    decision: TradeDecision,
    value: float,
    now: datetime,
    market_status: MarketStatus,
    realized_pnl: float | None = None,
    realized_pnl_percent: float | None = None,
) -> Trade:
    return Trade(
        id=new_trade_id(),
        ticker=decision.ticker,
        action=decision.action,
        shares=decision.shares,
        price=decision.estimated_price,
        total_value=value,
        timestamp=now,
        confidence=decision.confidence,
        recommendation=decision.recommendation,
        market_status=market_status.session,
        is_valid=decision.is_valid,
        validation_warnings=decision.warnings,
        realized_pnl=realized_pnl,
        realized_pnl_percent=realized_pnl_percent,
        thesis_id=decision.thesis_id,
        debate_id=decision.debate_id,
    )
