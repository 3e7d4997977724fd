"""
Price validation.

Checks a price observation for sanity (positive, finite), freshness and
implausible jumps against the last known price of the same ticker.
"""

import math
from datetime import datetime
from threading import RLock

from cachetools import TTLCache
from loguru import logger

from paper_arena.core.constants import (
    LAST_PRICE_CACHE_SIZE,
    LAST_PRICE_CACHE_TTL_SECONDS,
    STALE_PRICE_SECONDS,
    SUSPICIOUS_MOVE_THRESHOLD,
)
from paper_arena.core.models.decision import PriceValidation
from paper_arena.core.utils.clock import as_utc


class PriceValidator:
    """Validates price observations and remembers the last accepted price per ticker."""

    def __init__(
        self,
        stale_after_seconds: int = STALE_PRICE_SECONDS,
        suspicious_move_threshold: float = SUSPICIOUS_MOVE_THRESHOLD,
        cache_size: int = LAST_PRICE_CACHE_SIZE,
        cache_ttl_seconds: int = LAST_PRICE_CACHE_TTL_SECONDS,
    ):
        if stale_after_seconds <= 0:
            raise ValueError("stale_after_seconds must be positive")
        self.stale_after_seconds = stale_after_seconds
        self.suspicious_move_threshold = suspicious_move_threshold
        self._last_prices: TTLCache[str, float] = TTLCache(
            maxsize=cache_size, ttl=cache_ttl_seconds
        )
        self._cache_lock = RLock()

    def remember(self, ticker: str, price: float) -> None:
        """Record a price as the last known good price for ticker."""
        if price > 0 and math.isfinite(price):
            with self._cache_lock:
                self._last_prices[ticker] = price

    def last_price(self, ticker: str) -> float | None:
        with self._cache_lock:
            return self._last_prices.get(ticker)

    def validate(
        self,
        ticker: str,
        price: float,
        timestamp: datetime,
        now: datetime,
        previous_price: float | None = None,
    ) -> PriceValidation:
        """Validate one price observation.

        Args:
            ticker: Ticker the price belongs to
            price: Observed price
            timestamp: When the price was observed
            now: Current time
            previous_price: Last known price; falls back to the remembered price

        Returns:
            PriceValidation with errors for unusable, stale or implausible prices
        """
        errors: list[str] = []
        warnings: list[str] = []

        timestamp = as_utc(timestamp)
        now = as_utc(now)
        if timestamp > now:
            logger.warning(f"Price timestamp for {ticker} is in the future; using current time")
            warnings.append("Price timestamp was in the future and was normalized")
            timestamp = now

        age_seconds = int((now - timestamp).total_seconds())
        is_stale = age_seconds > self.stale_after_seconds

        if not isinstance(price, int | float) or not math.isfinite(price):
            errors.append("Invalid price: must be a finite number")
        elif price <= 0:
            errors.append("Invalid price: must be greater than 0")
        else:
            reference = previous_price if previous_price is not None else self.last_price(ticker)
            if reference is not None and reference > 0:
                change = abs((price - reference) / reference)
                if change > self.suspicious_move_threshold:
                    errors.append(f"Unusual price movement: {change * 100:.1f}% change")

        if is_stale:
            errors.append(f"Price is {age_seconds // 60} minutes old")

        if errors:
            logger.debug(f"Price validation failed for {ticker}: {errors}")

        return PriceValidation(
            ticker=ticker,
            price=price,
            timestamp=timestamp,
            is_valid=not errors,
            age_seconds=age_seconds,
            errors=tuple(errors),
            warnings=tuple(warnings),
            is_stale=is_stale,
            stale_threshold_seconds=self.stale_after_seconds,
        )
