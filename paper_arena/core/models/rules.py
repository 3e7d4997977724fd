"""
Position sizing and risk management rules.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from paper_arena.core import constants
from paper_arena.core.exceptions.trading import ValidationError
from paper_arena.core.utils.validation import validate_non_negative, validate_ratio

if TYPE_CHECKING:
    from paper_arena.core.config import Settings


@dataclass(frozen=True)
class PositionSizingRules:
    """Limits applied when sizing a BUY."""

    max_position_percent: float = constants.MAX_POSITION_PERCENT
    max_total_invested: float = constants.MAX_TOTAL_INVESTED
    min_trade_value: float = constants.MIN_TRADE_VALUE
    max_positions_per_agent: int = constants.MAX_POSITIONS_PER_AGENT
    reserve_cash_percent: float = constants.RESERVE_CASH_PERCENT

    def __post_init__(self) -> None:
        validate_ratio(self.max_position_percent, "max_position_percent")
        validate_ratio(self.max_total_invested, "max_total_invested")
        validate_ratio(self.reserve_cash_percent, "reserve_cash_percent")
        validate_non_negative(self.min_trade_value, "min_trade_value")
        if self.max_positions_per_agent <= 0:
            raise ValidationError(
                f"max_positions_per_agent must be positive, got {self.max_positions_per_agent}"
            )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PositionSizingRules":
        return cls(
            max_position_percent=settings.max_position_percent,
            max_total_invested=settings.max_total_invested,
            min_trade_value=settings.min_trade_value,
            max_positions_per_agent=settings.max_positions_per_agent,
            reserve_cash_percent=settings.reserve_cash_percent,
        )


@dataclass(frozen=True)
class RiskManagementRules:
    """Drawdown thresholds that drive the portfolio status machine."""

    max_drawdown_before_pause: float = constants.MAX_DRAWDOWN_BEFORE_PAUSE
    max_drawdown_before_liquidate: float = constants.MAX_DRAWDOWN_BEFORE_LIQUIDATE

    def __post_init__(self) -> None:
        validate_ratio(self.max_drawdown_before_pause, "max_drawdown_before_pause")
        validate_ratio(self.max_drawdown_before_liquidate, "max_drawdown_before_liquidate")
        if self.max_drawdown_before_pause > self.max_drawdown_before_liquidate:
            raise ValidationError("Pause threshold must not exceed liquidation threshold")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RiskManagementRules":
        return cls(
            max_drawdown_before_pause=settings.max_drawdown_before_pause,
            max_drawdown_before_liquidate=settings.max_drawdown_before_liquidate,
        )


@dataclass(frozen=True)
class SizingResult:
    """Outcome of sizing a BUY."""

    is_valid: bool
    shares: int = 0
    value: float = 0.0
    reasons: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def reject(cls, *reasons: str) -> "SizingResult":
        return cls(is_valid=False, reasons=reasons)
