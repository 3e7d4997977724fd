"""
Recommendation and debate enumerations.

This module defines the thesis recommendations produced by analyst agents
and the sides of a bull-vs-bear debate.
"""

from enum import StrEnum


class Recommendation(StrEnum):
    """
    Allowed thesis recommendations.

    Ordered from most bullish to most bearish.
    """

    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"

    @property
    def is_buy_side(self) -> bool:
        """Check if recommendation asks to open or add to a position."""
        return self in [self.STRONG_BUY, self.BUY]

    @property
    def is_sell_side(self) -> bool:
        """Check if recommendation asks to reduce or close a position."""
        return self in [self.SELL, self.STRONG_SELL]

    @property
    def sell_fraction(self) -> float:
        """Fraction of an open position to sell for this recommendation."""
        fractions = {
            self.STRONG_SELL: 1.0,
            self.SELL: 0.5,
        }
        return fractions.get(self, 0.0)


class DebateWinner(StrEnum):
    """
    Sides of a bull-vs-bear debate.
    """

    BULL = "bull"
    BEAR = "bear"

    def supports(self, recommendation: Recommendation) -> bool:
        """Check if this debate side backs the given recommendation."""
        if self == self.BULL:
            return recommendation.is_buy_side
        return recommendation.is_sell_side
