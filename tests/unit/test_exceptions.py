"""
Unit tests for the trading exception hierarchy.
"""

import pytest

from paper_arena.core.enums import TradingErrorCode
from paper_arena.core.exceptions.trading import (
    CorporateActionError,
    DataCorruptionError,
    DuplicateTradeError,
    InsufficientCashError,
    InvalidPriceError,
    InvalidShareCountError,
    LockTimeoutError,
    MarketClosedError,
    PersistenceError,
    PortfolioInactiveError,
    PositionLimitError,
    PositionNotFoundError,
    StalePriceError,
    StorageFullError,
    TradingError,
    UpstreamAPIError,
    ValidationError,
)


class TestTradingErrorHierarchy:
    """Test suite for error codes and recoverable flags."""

    @pytest.mark.parametrize(
        ("error", "code", "recoverable"),
        [
            (InsufficientCashError(500.0, 100.0), TradingErrorCode.INSUFFICIENT_CASH, False),
            (InvalidPriceError(-1.0, "AAPL"), TradingErrorCode.INVALID_PRICE, False),
            (MarketClosedError("CLOSED", "closed"), TradingErrorCode.MARKET_CLOSED, True),
            (PositionLimitError(10, "AAPL"), TradingErrorCode.POSITION_LIMIT, True),
            (StorageFullError("full"), TradingErrorCode.STORAGE_FULL, True),
            (PersistenceError("denied"), TradingErrorCode.API_FAILURE, True),
            (DataCorruptionError("bad"), TradingErrorCode.DATA_CORRUPTION, False),
            (UpstreamAPIError("down"), TradingErrorCode.API_FAILURE, True),
            (StalePriceError("AAPL", 600, 300), TradingErrorCode.STALE_PRICE, True),
            (InvalidShareCountError(0), TradingErrorCode.INVALID_SHARES, False),
            (PositionNotFoundError("AAPL"), TradingErrorCode.POSITION_NOT_FOUND, False),
            (DuplicateTradeError("AAPL", "BUY", 10, 150.0), TradingErrorCode.DUPLICATE_TRADE, True),
            (
                CorporateActionError("AAPL", "SPLIT", "no position"),
                TradingErrorCode.CORPORATE_ACTION_FAILED,
                True,
            ),
            (
                PortfolioInactiveError("jim", "liquidated"),
                TradingErrorCode.PORTFOLIO_INACTIVE,
                False,
            ),
            (LockTimeoutError(1.0), TradingErrorCode.LOCK_TIMEOUT, True),
        ],
    )
    def test_should_carry_code_and_recoverable_flag(
        self, error: TradingError, code: TradingErrorCode, recoverable: bool
    ) -> None:
        assert isinstance(error, TradingError)
        assert error.code == code
        assert error.recoverable is recoverable

    def test_should_allow_recoverable_override(self) -> None:
        error = UpstreamAPIError("quota exhausted", recoverable=False)

        assert error.recoverable is False
        assert UpstreamAPIError.recoverable is True

    def test_should_treat_price_and_share_errors_as_validation_errors(self) -> None:
        assert issubclass(InvalidPriceError, ValidationError)
        assert issubclass(InvalidShareCountError, ValidationError)

    def test_should_treat_storage_full_as_persistence_error(self) -> None:
        assert issubclass(StorageFullError, PersistenceError)


class TestErrorMessages:
    """Test suite for error messages and context."""

    def test_should_format_insufficient_cash(self) -> None:
        error = InsufficientCashError(1500.0, 1000.0, "BUY AAPL")

        assert str(error) == "Insufficient cash for BUY AAPL: required=1500.00, available=1000.00"
        assert error.context == {"required": 1500.0, "available": 1000.0}

    def test_should_format_stale_price_in_minutes(self) -> None:
        error = StalePriceError("AAPL", 600, 300)

        assert error.message == "Price for AAPL is 10 minutes old (threshold 5 minutes)"
        assert error.context["age_seconds"] == 600

    def test_should_format_lock_timeout(self) -> None:
        error = LockTimeoutError(1.5, name="warren")

        assert error.message == "Failed to acquire warren lock within 1.5s"

    def test_should_default_context_to_empty_dict(self) -> None:
        assert DataCorruptionError("bad document").context == {}
