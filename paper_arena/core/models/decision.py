"""
Decision inputs and outputs.

Thesis and DebateOutcome arrive from the analysis layer; TradeDecision is the
ephemeral, validated instruction handed to the execution ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime

from paper_arena.core.enums import DebateWinner, Recommendation, TradeAction
from paper_arena.core.exceptions.trading import InvalidPriceError, StalePriceError
from paper_arena.core.utils.validation import validate_confidence, validate_ticker


@dataclass(frozen=True)
class Thesis:
    """An agent's recommendation for one ticker."""

    ticker: str
    recommendation: Recommendation
    confidence: float
    id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", validate_ticker(self.ticker))
        validate_confidence(self.confidence)


@dataclass(frozen=True)
class DebateOutcome:
    """Result of the bull/bear debate about a thesis."""

    winner: DebateWinner
    margin: float
    id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "margin", abs(self.margin))

    @classmethod
    def from_scores(
        cls, bull_score: float, bear_score: float, debate_id: str | None = None
    ) -> "DebateOutcome":
        """Build an outcome from bull and bear scores. Ties go to the bear."""
        winner = DebateWinner.BULL if bull_score > bear_score else DebateWinner.BEAR
        return cls(winner=winner, margin=bull_score - bear_score, id=debate_id)


@dataclass(frozen=True)
class TradeDecision:
    """A bounded, validated instruction for the execution ledger."""

    action: TradeAction
    ticker: str
    shares: int
    estimated_price: float
    estimated_value: float
    confidence: float
    reasoning: str
    recommendation: Recommendation
    is_valid: bool
    warnings: tuple[str, ...] = ()
    validation_errors: tuple[str, ...] = ()
    thesis_id: str | None = None
    debate_id: str | None = None
    price_validation: "PriceValidation | None" = None

    @property
    def is_executable(self) -> bool:
        """Check if the ledger should act on this decision."""
        return self.is_valid and self.action.is_executable and self.shares > 0


@dataclass(frozen=True)
class PriceValidation:
    """Outcome of validating one price observation."""

    ticker: str
    price: float
    timestamp: datetime
    is_valid: bool
    age_seconds: int
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    is_stale: bool = False
    stale_threshold_seconds: int = 0

    def raise_for_status(self) -> None:
        """Raise the typed error matching the first failure, if any.

        Raises:
            StalePriceError: If the observation is older than the threshold
            InvalidPriceError: If the price itself is unusable
        """
        if self.is_valid:
            return
        if self.is_stale:
            raise StalePriceError(self.ticker, self.age_seconds, self.stale_threshold_seconds)
        raise InvalidPriceError(self.price, self.ticker, "; ".join(self.errors) or None)


@dataclass(frozen=True)
class ClosedPosition:
    """A round trip derived by FIFO matching of buys against sells."""

    ticker: str
    shares: int
    cost_basis: float
    proceeds: float
    realized_pnl: float
    realized_pnl_percent: float
    open_date: datetime
    close_date: datetime
    holding_period_days: int
    open_trades: tuple[str, ...] = field(default_factory=tuple)
    close_trades: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_win(self) -> bool:
        return self.realized_pnl > 0
