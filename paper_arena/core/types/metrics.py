"""
Metric result types.

The Sharpe ratio is only meaningful once enough daily samples exist, so it is
modelled as a sum type instead of a float with a magic zero.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NotEnoughData:
    """Sharpe ratio placeholder until enough daily returns are available."""

    samples: int = 0
    required: int = 30

    def as_float(self) -> float:
        return 0.0


@dataclass(frozen=True)
class SharpeValue:
    """An annualized Sharpe ratio computed from daily returns."""

    value: float

    def as_float(self) -> float:
        return self.value


SharpeRatio = NotEnoughData | SharpeValue
