"""
Custom exception hierarchy for the paper trading ledger.

Every error carries a TradingErrorCode and a recoverable flag so that the
trading service can record it in the owning portfolio's error log.
"""

from typing import Any

from paper_arena.core.enums import TradingErrorCode


class TradingError(Exception):
    """Base exception for all trading-related errors."""

    code: TradingErrorCode = TradingErrorCode.API_FAILURE
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if recoverable is not None:
            self.recoverable = recoverable
        self.context = context or {}


class ValidationError(TradingError):
    """Raised when input validation fails."""

    code = TradingErrorCode.DATA_CORRUPTION
    recoverable = False


class InvalidPriceError(ValidationError):
    """Raised when a price is non-positive, non-finite or implausible."""

    code = TradingErrorCode.INVALID_PRICE

    def __init__(self, price: float, ticker: str | None = None, reason: str | None = None):
        self.price = price
        self.ticker = ticker
        detail = reason or "must be greater than 0"
        target = f" for {ticker}" if ticker else ""
        super().__init__(
            f"Invalid price{target}: {price} ({detail})",
            context={"price": price, "ticker": ticker},
        )


class InvalidShareCountError(ValidationError):
    """Raised when a share count is not a positive integer or exceeds holdings."""

    code = TradingErrorCode.INVALID_SHARES

    def __init__(self, shares: Any, reason: str = "must be a positive integer"):
        self.shares = shares
        self.reason = reason
        super().__init__(
            f"Invalid shares {shares!r}: {reason}",
            context={"shares": shares, "reason": reason},
        )


class InsufficientCashError(TradingError):
    """Raised when there is not enough cash for a purchase."""

    code = TradingErrorCode.INSUFFICIENT_CASH
    recoverable = False

    def __init__(self, required: float, available: float, operation: str = "operation"):
        self.required = required
        self.available = available
        self.operation = operation
        super().__init__(
            f"Insufficient cash for {operation}: "
            f"required={required:.2f}, available={available:.2f}",
            context={"required": required, "available": available},
        )


class PositionNotFoundError(TradingError):
    """Raised when trying to operate on a non-existent position."""

    code = TradingErrorCode.POSITION_NOT_FOUND
    recoverable = False

    def __init__(self, ticker: str):
        self.ticker = ticker
        super().__init__(f"Position not found for ticker: {ticker}", context={"ticker": ticker})


class PositionLimitError(TradingError):
    """Raised when an agent already holds the maximum number of positions."""

    code = TradingErrorCode.POSITION_LIMIT

    def __init__(self, limit: int, ticker: str):
        self.limit = limit
        self.ticker = ticker
        super().__init__(
            f"Max positions reached ({limit}) - cannot open {ticker}",
            context={"limit": limit, "ticker": ticker},
        )


class DuplicateTradeError(TradingError):
    """Raised when a trade repeats a very recent identical trade."""

    code = TradingErrorCode.DUPLICATE_TRADE

    def __init__(self, ticker: str, action: str, shares: int, price: float):
        self.ticker = ticker
        self.action = action
        self.shares = shares
        self.price = price
        super().__init__(
            f"Duplicate trade detected: {action} {shares} {ticker} @ {price:.2f}",
            context={"ticker": ticker, "action": action, "shares": shares, "price": price},
        )


class StalePriceError(TradingError):
    """Raised when a price observation is older than the staleness threshold."""

    code = TradingErrorCode.STALE_PRICE

    def __init__(self, ticker: str, age_seconds: int, threshold_seconds: int):
        self.ticker = ticker
        self.age_seconds = age_seconds
        self.threshold_seconds = threshold_seconds
        super().__init__(
            f"Price for {ticker} is {age_seconds // 60} minutes old "
            f"(threshold {threshold_seconds // 60} minutes)",
            context={"ticker": ticker, "age_seconds": age_seconds},
        )


class MarketClosedError(TradingError):
    """Raised when market hours are enforced and the market is closed."""

    code = TradingErrorCode.MARKET_CLOSED

    def __init__(self, session: str, message: str):
        self.session = session
        super().__init__(message, context={"session": session})


class PersistenceError(TradingError):
    """Raised when the state store fails to write."""

    code = TradingErrorCode.API_FAILURE


class StorageFullError(PersistenceError):
    """Raised when the state store rejects a write for lack of space."""

    code = TradingErrorCode.STORAGE_FULL

    def __init__(self, message: str, size_bytes: int | None = None):
        self.size_bytes = size_bytes
        super().__init__(message, context={"size_bytes": size_bytes})


class DataCorruptionError(TradingError):
    """Raised when a persisted or imported document fails structural validation."""

    code = TradingErrorCode.DATA_CORRUPTION
    recoverable = False


class UpstreamAPIError(TradingError):
    """Raised (or wrapped) when an external collaborator fails."""

    code = TradingErrorCode.API_FAILURE


class CorporateActionError(TradingError):
    """Raised when a corporate action cannot be applied."""

    code = TradingErrorCode.CORPORATE_ACTION_FAILED

    def __init__(self, ticker: str, action_type: str, reason: str):
        self.ticker = ticker
        self.action_type = action_type
        self.reason = reason
        super().__init__(
            f"Corporate action {action_type} failed for {ticker}: {reason}",
            context={"ticker": ticker, "action_type": action_type},
        )


class PortfolioInactiveError(TradingError):
    """Raised when a liquidated portfolio is asked to trade."""

    code = TradingErrorCode.PORTFOLIO_INACTIVE
    recoverable = False

    def __init__(self, agent_id: str, status: str):
        self.agent_id = agent_id
        self.status = status
        super().__init__(
            f"Portfolio {agent_id} is {status}", context={"agent_id": agent_id, "status": status}
        )


class LockTimeoutError(TradingError):
    """Raised when the ledger lock cannot be acquired in time."""

    code = TradingErrorCode.LOCK_TIMEOUT

    def __init__(self, timeout: float, name: str = "ledger"):
        self.timeout = timeout
        super().__init__(
            f"Failed to acquire {name} lock within {timeout:.1f}s", context={"timeout": timeout}
        )
