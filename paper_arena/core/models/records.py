"""
Portfolio history records: performance snapshots, error log entries and
corporate actions.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from paper_arena.core.enums import CorporateActionType, ErrorSeverity, TradingErrorCode

if TYPE_CHECKING:
    from paper_arena.core.exceptions.trading import TradingError


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Daily point-in-time summary of a portfolio."""

    timestamp: datetime
    total_value: float
    cash: float
    positions_value: float
    total_return: float
    daily_return: float
    volatility: float
    sharpe_ratio: float
    max_drawdown: float
    current_drawdown: float
    num_positions: int
    largest_position: str | None
    largest_position_percent: float


@dataclass
class ErrorLogEntry:
    """A typed error recorded against a portfolio (or the system)."""

    id: str
    timestamp: datetime
    code: TradingErrorCode
    message: str
    severity: ErrorSeverity
    context: dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    resolved_at: datetime | None = None

    @classmethod
    def from_error(cls, error: "TradingError", timestamp: datetime) -> "ErrorLogEntry":
        """Build an entry from a typed trading error.

        Recoverable errors are logged as MEDIUM, everything else as CRITICAL.
        """
        return cls(
            id=f"err_{uuid.uuid4().hex[:12]}",
            timestamp=timestamp,
            code=error.code,
            message=error.message,
            severity=ErrorSeverity.MEDIUM if error.recoverable else ErrorSeverity.CRITICAL,
            context=dict(error.context),
        )

    def resolve(self, timestamp: datetime) -> None:
        self.resolved = True
        self.resolved_at = timestamp


@dataclass
class CorporateAction:
    """A processed split, dividend or ticker change."""

    id: str
    ticker: str
    action_type: CorporateActionType
    effective_date: datetime
    details: dict[str, Any] = field(default_factory=dict)
    processed: bool = False
    processed_at: datetime | None = None

    @classmethod
    def create(
        cls,
        ticker: str,
        action_type: CorporateActionType,
        effective_date: datetime,
        details: dict[str, Any],
    ) -> "CorporateAction":
        return cls(
            id=f"ca_{uuid.uuid4().hex[:12]}",
            ticker=ticker,
            action_type=action_type,
            effective_date=effective_date,
            details=details,
        )

    def mark_processed(self, timestamp: datetime) -> None:
        self.processed = True
        self.processed_at = timestamp
