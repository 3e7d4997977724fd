"""
Corporate action processing: stock splits, cash dividends and ticker changes.

Each action runs under the agent's ledger lock, restates the affected
position and trade history, and is appended to the portfolio's corporate
action log.
"""

import math
from datetime import datetime

from loguru import logger

from paper_arena.core.enums import CorporateActionType
from paper_arena.core.exceptions.trading import CorporateActionError, TradingError
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.position import Position
from paper_arena.core.models.records import CorporateAction
from paper_arena.core.models.trade import Trade
from paper_arena.core.trading.ledger import ExecutionLedger, portfolio_transaction
from paper_arena.core.types.financial import round_amount
from paper_arena.core.utils.decorators import log_trades
from paper_arena.core.utils.validation import validate_ticker


class CorporateActionProcessor:
    """Applies corporate actions to portfolios through the execution ledger's lock."""

    def __init__(self, ledger: ExecutionLedger):
        self.ledger = ledger

    @log_trades
    def apply_split(self, portfolio: AgentPortfolio, ticker: str, ratio: float) -> CorporateAction:
        """Apply a ratio:1 split (ratio < 1 for a reverse split).

        Shares become floor(shares * ratio); cost basis, current price and the
        high-water mark are divided by ratio; historical trades are restated.

        Raises:
            CorporateActionError: If ratio is invalid, no position is held or the
                split would leave zero shares
        """
        ticker = self._ticker(ticker, CorporateActionType.SPLIT)
        if isinstance(ratio, bool) or not math.isfinite(ratio) or ratio <= 0:
            raise CorporateActionError(ticker, CorporateActionType.SPLIT, "ratio must be positive")

        with self.ledger.locks.hold(portfolio.agent_id):
            now = self.ledger.clock()
            position = self._position(portfolio, ticker, CorporateActionType.SPLIT)
            old_shares = position.shares
            old_cost_basis = position.avg_cost_basis
            new_shares = math.floor(old_shares * ratio)
            if new_shares <= 0:
                raise CorporateActionError(
                    ticker, CorporateActionType.SPLIT, "split would result in 0 shares"
                )

            with portfolio_transaction(portfolio):
                position.shares = new_shares
                position.avg_cost_basis = old_cost_basis / ratio
                position.total_cost_basis = round_amount(new_shares * position.avg_cost_basis)
                position.high_water_mark = position.high_water_mark / ratio
                position.mark(position.current_price / ratio, now)

                portfolio.trades = [
                    _split_trade(trade, ratio) if trade.ticker == ticker else trade
                    for trade in portfolio.trades
                ]

                action = self._record(
                    portfolio,
                    ticker,
                    CorporateActionType.SPLIT,
                    now,
                    {
                        "ratio": ratio,
                        "old_shares": old_shares,
                        "new_shares": new_shares,
                        "old_cost_basis": old_cost_basis,
                        "new_cost_basis": position.avg_cost_basis,
                    },
                )

            logger.info(
                f"Processed {ratio:g}:1 split for {ticker}: {old_shares} -> {new_shares} shares"
            )
            self.ledger.commit(portfolio)
            return action

    @log_trades
    def apply_dividend(
        self, portfolio: AgentPortfolio, ticker: str, amount: float
    ) -> CorporateAction:
        """Credit a cash dividend of amount per held share.

        Raises:
            CorporateActionError: If amount is invalid or no position is held
        """
        ticker = self._ticker(ticker, CorporateActionType.DIVIDEND)
        if isinstance(amount, bool) or not math.isfinite(amount) or amount <= 0:
            raise CorporateActionError(
                ticker, CorporateActionType.DIVIDEND, "amount per share must be positive"
            )

        with self.ledger.locks.hold(portfolio.agent_id):
            now = self.ledger.clock()
            position = self._position(portfolio, ticker, CorporateActionType.DIVIDEND)
            total = round_amount(position.shares * amount)

            with portfolio_transaction(portfolio):
                portfolio.current_cash = round_amount(portfolio.current_cash + total)
                action = self._record(
                    portfolio,
                    ticker,
                    CorporateActionType.DIVIDEND,
                    now,
                    {
                        "amount_per_share": amount,
                        "total_amount": total,
                        "shares": position.shares,
                        "dividend_type": "CASH",
                    },
                )

            logger.info(
                f"Processed dividend for {ticker}: {total:.2f} "
                f"({position.shares} shares x {amount})"
            )
            self.ledger.commit(portfolio)
            return action

    @log_trades
    def apply_ticker_change(
        self, portfolio: AgentPortfolio, ticker: str, new_ticker: str
    ) -> CorporateAction:
        """Rename a held ticker across the position and trade history.

        Raises:
            CorporateActionError: If the tickers are invalid or equal, no position is
                held, or the new ticker is already held
        """
        ticker = self._ticker(ticker, CorporateActionType.TICKER_CHANGE)
        new_ticker = self._ticker(new_ticker, CorporateActionType.TICKER_CHANGE)
        if ticker == new_ticker:
            raise CorporateActionError(
                ticker, CorporateActionType.TICKER_CHANGE, "old and new ticker are the same"
            )

        with self.ledger.locks.hold(portfolio.agent_id):
            now = self.ledger.clock()
            position = self._position(portfolio, ticker, CorporateActionType.TICKER_CHANGE)
            if portfolio.has_position(new_ticker):
                raise CorporateActionError(
                    ticker, CorporateActionType.TICKER_CHANGE, f"{new_ticker} is already held"
                )

            with portfolio_transaction(portfolio):
                position.ticker = new_ticker
                position.last_price_update = now
                portfolio.positions = {
                    (new_ticker if key == ticker else key): value
                    for key, value in portfolio.positions.items()
                }
                portfolio.trades = [
                    trade.replace(ticker=new_ticker) if trade.ticker == ticker else trade
                    for trade in portfolio.trades
                ]
                action = self._record(
                    portfolio,
                    ticker,
                    CorporateActionType.TICKER_CHANGE,
                    now,
                    {"old_ticker": ticker, "new_ticker": new_ticker},
                )

            logger.info(f"Processed ticker change: {ticker} -> {new_ticker}")
            self.ledger.commit(portfolio)
            return action

    def _record(
        self,
        portfolio: AgentPortfolio,
        ticker: str,
        action_type: CorporateActionType,
        now: datetime,
        details: dict,
    ) -> CorporateAction:
        action = CorporateAction.create(ticker, action_type, now, details)
        action.mark_processed(now)
        portfolio.corporate_actions.append(action)
        self.ledger.refresh_metrics(portfolio, now)
        return action

    @staticmethod
    def _ticker(ticker: str, action_type: CorporateActionType) -> str:
        try:
            return validate_ticker(ticker)
        except TradingError as e:
            raise CorporateActionError(str(ticker), action_type, e.message) from e

    @staticmethod
    def _position(
        portfolio: AgentPortfolio, ticker: str, action_type: CorporateActionType
    ) -> Position:
        position = portfolio.positions.get(ticker)
        if position is None:
            raise CorporateActionError(ticker, action_type, "no open position")
        return position


def _split_trade(trade: Trade, ratio: float) -> Trade:
    # total_value is unchanged by a split
    return trade.replace(shares=max(1, math.floor(trade.shares * ratio)), price=trade.price / ratio)
