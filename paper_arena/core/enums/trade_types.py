"""
Trade, portfolio and market state enumerations.

This module defines the trade actions, portfolio lifecycle states and
the auxiliary states recorded alongside trades.
"""

from enum import StrEnum


class TradeAction(StrEnum):
    """
    Allowed trade decision actions.

    Only BUY and SELL ever reach the ledger; HOLD is a decision outcome.
    """

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @property
    def is_executable(self) -> bool:
        """Check if action mutates a portfolio when executed."""
        return self in [self.BUY, self.SELL]


class PortfolioStatus(StrEnum):
    """
    Portfolio lifecycle states.

    active -> paused -> liquidated. Liquidated is terminal.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    LIQUIDATED = "liquidated"

    @property
    def accepts_decisions(self) -> bool:
        """Check if the decision engine may propose trades."""
        return self == self.ACTIVE

    @property
    def is_terminal(self) -> bool:
        """Check if no further trades are possible."""
        return self == self.LIQUIDATED


class ErrorSeverity(StrEnum):
    """Severity of an entry in a portfolio error log."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MarketSession(StrEnum):
    """US equity market session at a point in time."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PRE_MARKET = "PRE_MARKET"
    AFTER_HOURS = "AFTER_HOURS"


class CorporateActionType(StrEnum):
    """Corporate actions the ledger knows how to apply."""

    SPLIT = "SPLIT"
    DIVIDEND = "DIVIDEND"
    TICKER_CHANGE = "TICKER_CHANGE"


class TradingErrorCode(StrEnum):
    """Codes carried by every typed trading error."""

    INSUFFICIENT_CASH = "INSUFFICIENT_CASH"
    INVALID_PRICE = "INVALID_PRICE"
    MARKET_CLOSED = "MARKET_CLOSED"
    POSITION_LIMIT = "POSITION_LIMIT"
    STORAGE_FULL = "STORAGE_FULL"
    DATA_CORRUPTION = "DATA_CORRUPTION"
    API_FAILURE = "API_FAILURE"
    STALE_PRICE = "STALE_PRICE"
    INVALID_SHARES = "INVALID_SHARES"
    POSITION_NOT_FOUND = "POSITION_NOT_FOUND"
    DUPLICATE_TRADE = "DUPLICATE_TRADE"
    CORPORATE_ACTION_FAILED = "CORPORATE_ACTION_FAILED"
    PORTFOLIO_INACTIVE = "PORTFOLIO_INACTIVE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
