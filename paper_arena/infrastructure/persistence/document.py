"""
Persisted document schema.

Pydantic models mirror the domain dataclasses one to one. They are the only
place where the persisted/imported document is validated: required fields,
list shapes, non-negative amounts and counters, known enum values and dates
that are not in the future. A document that fails validation is rejected
whole with DataCorruptionError.
"""

import json
from collections.abc import Iterator
from dataclasses import asdict
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Self, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from paper_arena.core.constants import (
    FUTURE_DATE_TOLERANCE_SECONDS,
    MIN_SHARPE_SAMPLES,
    STATE_VERSION,
)
from paper_arena.core.enums import (
    CorporateActionType,
    ErrorSeverity,
    MarketSession,
    Methodology,
    PortfolioStatus,
    Recommendation,
    TradeAction,
    TradingErrorCode,
)
from paper_arena.core.exceptions.trading import DataCorruptionError
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.position import Position
from paper_arena.core.models.records import CorporateAction, ErrorLogEntry, PerformanceSnapshot
from paper_arena.core.models.rules import PositionSizingRules, RiskManagementRules
from paper_arena.core.models.system_state import TradingSystemState
from paper_arena.core.models.trade import Trade
from paper_arena.core.types import NotEnoughData, SharpeValue
from paper_arena.core.utils.clock import as_utc

D = TypeVar("D", bound=BaseModel)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
NonNegative = Annotated[float, Field(ge=0)]


class _Document(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        allow_inf_nan=False,
        ser_json_inf_nan="constants",
        use_enum_values=False,
    )


class PositionDocument(_Document):
    ticker: str = Field(min_length=1)
    shares: int = Field(gt=0)
    avg_cost_basis: NonNegative
    total_cost_basis: NonNegative
    current_price: NonNegative
    market_value: NonNegative
    unrealized_pnl: float
    unrealized_pnl_percent: float
    realized_pnl: float = 0.0
    high_water_mark: NonNegative
    drawdown_from_high: NonNegative = 0.0
    opened_at: UtcDatetime
    last_price_update: UtcDatetime

    @classmethod
    def from_domain(cls, position: Position) -> "PositionDocument":
        return cls.model_validate(asdict(position))

    def to_domain(self) -> Position:
        return Position(**self.model_dump())


class TradeDocument(_Document):
    id: str = Field(min_length=1)
    ticker: str = Field(min_length=1)
    action: TradeAction
    shares: int = Field(gt=0)
    price: float = Field(gt=0)
    total_value: NonNegative
    timestamp: UtcDatetime
    confidence: float = Field(ge=0, le=100)
    recommendation: Recommendation
    market_status: MarketSession
    is_valid: bool = True
    validation_warnings: list[str] = Field(default_factory=list)
    realized_pnl: float | None = None
    realized_pnl_percent: float | None = None
    thesis_id: str | None = None
    debate_id: str | None = None
    commission: NonNegative = 0.0

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: TradeAction) -> TradeAction:
        if not v.is_executable:
            raise ValueError("trade action must be BUY or SELL")
        return v

    @classmethod
    def from_domain(cls, trade: Trade) -> "TradeDocument":
        return cls.model_validate(asdict(trade))

    def to_domain(self) -> Trade:
        data = self.model_dump()
        data["validation_warnings"] = tuple(data["validation_warnings"])
        return Trade(**data)


class SnapshotDocument(_Document):
    timestamp: UtcDatetime
    total_value: NonNegative
    cash: NonNegative
    positions_value: NonNegative
    total_return: float
    daily_return: float
    volatility: NonNegative
    sharpe_ratio: float
    max_drawdown: NonNegative
    current_drawdown: NonNegative
    num_positions: int = Field(ge=0)
    largest_position: str | None = None
    largest_position_percent: NonNegative = 0.0

    @classmethod
    def from_domain(cls, snapshot: PerformanceSnapshot) -> "SnapshotDocument":
        return cls.model_validate(asdict(snapshot))

    def to_domain(self) -> PerformanceSnapshot:
        return PerformanceSnapshot(**self.model_dump())


class ErrorLogDocument(_Document):
    id: str = Field(min_length=1)
    timestamp: UtcDatetime
    code: TradingErrorCode
    message: str
    severity: ErrorSeverity
    context: dict[str, Any] = Field(default_factory=dict)
    resolved: bool = False
    resolved_at: UtcDatetime | None = None

    @classmethod
    def from_domain(cls, entry: ErrorLogEntry) -> "ErrorLogDocument":
        return cls.model_validate(asdict(entry))

    def to_domain(self) -> ErrorLogEntry:
        return ErrorLogEntry(**self.model_dump())


class CorporateActionDocument(_Document):
    id: str = Field(min_length=1)
    ticker: str = Field(min_length=1)
    action_type: CorporateActionType
    effective_date: UtcDatetime
    details: dict[str, Any] = Field(default_factory=dict)
    processed: bool = False
    processed_at: UtcDatetime | None = None

    @classmethod
    def from_domain(cls, action: CorporateAction) -> "CorporateActionDocument":
        return cls.model_validate(asdict(action))

    def to_domain(self) -> CorporateAction:
        return CorporateAction(**self.model_dump())


class PortfolioDocument(_Document):
    agent_id: str = Field(min_length=1)
    agent_name: str
    methodology: Methodology
    initial_cash: float = Field(gt=0)
    current_cash: NonNegative
    total_value: NonNegative
    total_return: float = 0.0
    total_return_dollar: float = 0.0
    win_rate: float = Field(default=0.0, ge=0, le=1)
    sharpe_ratio: float | None = None
    volatility: NonNegative = 0.0
    max_drawdown: NonNegative = 0.0
    current_drawdown: NonNegative = 0.0
    peak_value: NonNegative = 0.0
    total_trades: int = Field(default=0, ge=0)
    winning_trades: int = Field(default=0, ge=0)
    losing_trades: int = Field(default=0, ge=0)
    avg_win: float = 0.0
    avg_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    profit_factor: Annotated[float, Field(ge=0, allow_inf_nan=True)] = 0.0
    positions: list[PositionDocument]
    trades: list[TradeDocument]
    performance_history: list[SnapshotDocument]
    error_log: list[ErrorLogDocument]
    corporate_actions: list[CorporateActionDocument] = Field(default_factory=list)
    status: PortfolioStatus
    created_at: UtcDatetime
    updated_at: UtcDatetime
    last_trade_at: UtcDatetime | None = None

    @model_validator(mode="after")
    def validate_positions_unique(self) -> Self:
        tickers = [position.ticker for position in self.positions]
        if len(tickers) != len(set(tickers)):
            raise ValueError(f"duplicate positions in portfolio {self.agent_id}")
        return self

    @classmethod
    def from_domain(cls, portfolio: AgentPortfolio) -> "PortfolioDocument":
        sharpe = portfolio.sharpe_ratio
        return cls(
            agent_id=portfolio.agent_id,
            agent_name=portfolio.agent_name,
            methodology=portfolio.methodology,
            initial_cash=portfolio.initial_cash,
            current_cash=portfolio.current_cash,
            total_value=portfolio.total_value,
            total_return=portfolio.total_return,
            total_return_dollar=portfolio.total_return_dollar,
            win_rate=portfolio.win_rate,
            sharpe_ratio=sharpe.value if isinstance(sharpe, SharpeValue) else None,
            volatility=portfolio.volatility,
            max_drawdown=portfolio.max_drawdown,
            current_drawdown=portfolio.current_drawdown,
            peak_value=portfolio.peak_value,
            total_trades=portfolio.total_trades,
            winning_trades=portfolio.winning_trades,
            losing_trades=portfolio.losing_trades,
            avg_win=portfolio.avg_win,
            avg_loss=portfolio.avg_loss,
            largest_win=portfolio.largest_win,
            largest_loss=portfolio.largest_loss,
            profit_factor=portfolio.profit_factor,
            positions=[PositionDocument.from_domain(p) for p in portfolio.positions.values()],
            trades=[TradeDocument.from_domain(t) for t in portfolio.trades],
            performance_history=[
                SnapshotDocument.from_domain(s) for s in portfolio.performance_history
            ],
            error_log=[ErrorLogDocument.from_domain(e) for e in portfolio.error_log],
            corporate_actions=[
                CorporateActionDocument.from_domain(a) for a in portfolio.corporate_actions
            ],
            status=portfolio.status,
            created_at=portfolio.created_at,
            updated_at=portfolio.updated_at,
            last_trade_at=portfolio.last_trade_at,
        )

    def to_domain(self) -> AgentPortfolio:
        samples = len(self.performance_history)
        if self.sharpe_ratio is None:
            sharpe = NotEnoughData(samples=samples, required=MIN_SHARPE_SAMPLES)
        else:
            sharpe = SharpeValue(self.sharpe_ratio)

        return AgentPortfolio(
            agent_id=self.agent_id,
            agent_name=self.agent_name,
            methodology=self.methodology,
            initial_cash=self.initial_cash,
            current_cash=self.current_cash,
            created_at=self.created_at,
            updated_at=self.updated_at,
            total_value=self.total_value,
            total_return=self.total_return,
            total_return_dollar=self.total_return_dollar,
            win_rate=self.win_rate,
            sharpe_ratio=sharpe,
            volatility=self.volatility,
            max_drawdown=self.max_drawdown,
            current_drawdown=self.current_drawdown,
            peak_value=self.peak_value,
            total_trades=self.total_trades,
            winning_trades=self.winning_trades,
            losing_trades=self.losing_trades,
            avg_win=self.avg_win,
            avg_loss=self.avg_loss,
            largest_win=self.largest_win,
            largest_loss=self.largest_loss,
            profit_factor=self.profit_factor,
            positions={p.ticker: p.to_domain() for p in self.positions},
            trades=[t.to_domain() for t in self.trades],
            performance_history=[s.to_domain() for s in self.performance_history],
            error_log=[e.to_domain() for e in self.error_log],
            corporate_actions=[a.to_domain() for a in self.corporate_actions],
            status=self.status,
            last_trade_at=self.last_trade_at,
        )


class PositionSizingRulesDocument(_Document):
    max_position_percent: float = Field(gt=0, le=1)
    max_total_invested: float = Field(gt=0, le=1)
    min_trade_value: NonNegative
    max_positions_per_agent: int = Field(gt=0)
    reserve_cash_percent: float = Field(ge=0, lt=1)


class RiskManagementRulesDocument(_Document):
    max_drawdown_before_pause: float = Field(gt=0, le=1)
    max_drawdown_before_liquidate: float = Field(gt=0, le=1)


class SystemMetaDocument(_Document):
    """Everything in the system state except the portfolios."""

    version: int = Field(ge=1, le=STATE_VERSION)
    is_enabled: bool = True
    initial_cash: float = Field(gt=0)
    position_sizing_rules: PositionSizingRulesDocument
    risk_management_rules: RiskManagementRulesDocument
    start_date: UtcDatetime
    last_updated: UtcDatetime
    total_trades: int = Field(default=0, ge=0)
    total_volume: NonNegative = 0.0
    most_traded_stocks: dict[str, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)
    system_errors: list[ErrorLogDocument] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, state: TradingSystemState) -> "SystemMetaDocument":
        return cls(
            version=state.version,
            is_enabled=state.is_enabled,
            initial_cash=state.initial_cash,
            position_sizing_rules=PositionSizingRulesDocument.model_validate(
                asdict(state.position_sizing_rules)
            ),
            risk_management_rules=RiskManagementRulesDocument.model_validate(
                asdict(state.risk_management_rules)
            ),
            start_date=state.start_date,
            last_updated=state.last_updated,
            total_trades=state.total_trades,
            total_volume=state.total_volume,
            most_traded_stocks=dict(state.most_traded_stocks),
            system_errors=[ErrorLogDocument.from_domain(e) for e in state.system_errors],
        )


class SystemStateDocument(SystemMetaDocument):
    """The complete persisted document: ``{"version": 1, ...TradingSystemState}``."""

    portfolios: dict[str, PortfolioDocument]

    @model_validator(mode="after")
    def validate_consistency(self, info: ValidationInfo) -> Self:
        for key, portfolio in self.portfolios.items():
            if key != portfolio.agent_id:
                raise ValueError(f"portfolio key {key!r} does not match agent_id")

        now = (info.context or {}).get("now") or datetime.now(UTC)
        latest_allowed = now + timedelta(seconds=FUTURE_DATE_TOLERANCE_SECONDS)
        for value in _iter_datetimes(self):
            if value > latest_allowed:
                raise ValueError(f"date {value.isoformat()} is in the future")
        return self

    @classmethod
    def from_domain(cls, state: TradingSystemState) -> "SystemStateDocument":
        meta = SystemMetaDocument.from_domain(state)
        return cls(
            **dict(meta),
            portfolios={
                agent_id: PortfolioDocument.from_domain(portfolio)
                for agent_id, portfolio in state.portfolios.items()
            },
        )

    @classmethod
    def assemble(
        cls, meta: SystemMetaDocument, portfolios: list[PortfolioDocument]
    ) -> "SystemStateDocument":
        return cls(**dict(meta), portfolios={p.agent_id: p for p in portfolios})

    def meta(self) -> SystemMetaDocument:
        fields = SystemMetaDocument.model_fields
        return SystemMetaDocument(**{name: getattr(self, name) for name in fields})

    def to_domain(self) -> TradingSystemState:
        return TradingSystemState(
            initial_cash=self.initial_cash,
            start_date=self.start_date,
            last_updated=self.last_updated,
            portfolios={key: p.to_domain() for key, p in self.portfolios.items()},
            position_sizing_rules=PositionSizingRules(**self.position_sizing_rules.model_dump()),
            risk_management_rules=RiskManagementRules(**self.risk_management_rules.model_dump()),
            version=self.version,
            is_enabled=self.is_enabled,
            total_trades=self.total_trades,
            total_volume=self.total_volume,
            most_traded_stocks=dict(self.most_traded_stocks),
            system_errors=[e.to_domain() for e in self.system_errors],
        )


def _iter_datetimes(value: Any) -> Iterator[datetime]:
    if isinstance(value, datetime):
        yield value
    elif isinstance(value, BaseModel):
        for name in type(value).model_fields:
            yield from _iter_datetimes(getattr(value, name))
    elif isinstance(value, list):
        for item in value:
            yield from _iter_datetimes(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_datetimes(item)


def dump_document(document: BaseModel) -> str:
    """Serialize a document to JSON text (profit factor infinity as ``Infinity``)."""
    return document.model_dump_json()


def parse_document(
    text: str | bytes, model: type[D], now: datetime | None = None
) -> D:
    """Parse and validate JSON text.

    Raises:
        DataCorruptionError: If the text is not JSON or fails schema validation
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise DataCorruptionError(f"Persisted state is not valid JSON: {e}") from e
    return validate_document(data, model, now)


def validate_document(data: Any, model: type[D], now: datetime | None = None) -> D:
    """Validate already-decoded data against a document model.

    Raises:
        DataCorruptionError: If validation fails; nothing is partially adopted
    """
    try:
        return model.model_validate(data, context={"now": now or datetime.now(UTC)})
    except PydanticValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise DataCorruptionError(
            f"Persisted state failed validation ({e.error_count()} errors)",
            context={"errors": errors[:20]},
        ) from e
