"""
Validation utilities for core domain models.

Provides consistent validation across the application.
"""

import math
import re
from typing import Any

from paper_arena.core.exceptions.trading import (
    InvalidPriceError,
    InvalidShareCountError,
    ValidationError,
)

_TICKER_PATTERN = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")


def validate_ticker(ticker: Any, param_name: str = "ticker") -> str:
    """Validate and normalize an equity ticker symbol.

    Args:
        ticker: Value to validate
        param_name: Parameter name for error messages

    Returns:
        The upper-cased ticker

    Raises:
        ValidationError: If ticker is not a plausible symbol
    """
    if not isinstance(ticker, str):
        raise ValidationError(f"{param_name} must be str, got {type(ticker).__name__}")
    normalized = ticker.strip().upper()
    if not _TICKER_PATTERN.match(normalized):
        raise ValidationError(f"Invalid {param_name}: {ticker!r}")
    return normalized


def validate_positive(value: float, param_name: str) -> float:
    """Validate that a numeric value is positive.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"{param_name} must be positive, got {value}")
    return value


def validate_non_negative(value: float, param_name: str) -> float:
    """Validate that a numeric value is zero or greater.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{param_name} must be non-negative, got {value}")
    return value


def validate_price(price: Any, ticker: str | None = None) -> float:
    """Validate that a price is a finite number greater than zero.

    Raises:
        InvalidPriceError: If the price is not usable
    """
    if isinstance(price, bool) or not isinstance(price, int | float):
        raise InvalidPriceError(price, ticker, "must be a number")
    if not math.isfinite(price):
        raise InvalidPriceError(price, ticker, "must be finite")
    if price <= 0:
        raise InvalidPriceError(price, ticker)
    return float(price)


def validate_share_count(shares: Any, held: int | None = None) -> int:
    """Validate a whole-share count, optionally against current holdings.

    Args:
        shares: Requested share count
        held: Shares currently held, when selling

    Returns:
        The validated share count

    Raises:
        InvalidShareCountError: If shares is not a positive integer or exceeds held
    """
    if isinstance(shares, bool) or not isinstance(shares, int):
        raise InvalidShareCountError(shares, "must be an integer")
    if shares <= 0:
        raise InvalidShareCountError(shares)
    if held is not None and shares > held:
        raise InvalidShareCountError(shares, f"exceeds held shares ({held})")
    return shares


def validate_confidence(value: float, param_name: str = "confidence") -> float:
    """Validate that a confidence score lies in 0-100.

    Raises:
        ValidationError: If value is outside 0-100
    """
    if not math.isfinite(value) or value < 0 or value > 100:
        raise ValidationError(f"{param_name} must be between 0 and 100, got {value}")
    return value


def validate_ratio(value: float, param_name: str = "ratio") -> float:
    """Validate that a rate is reasonable (0-1).

    Raises:
        ValidationError: If rate is not between 0 and 1
    """
    if value < 0 or value > 1:
        raise ValidationError(f"{param_name} must be between 0 and 1, got {value}")
    return value
