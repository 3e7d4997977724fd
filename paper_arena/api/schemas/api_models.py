"""
Pydantic schemas for API request/response models.
"""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from paper_arena.core.enums import (
    CorporateActionType,
    DebateWinner,
    ErrorSeverity,
    MarketSession,
    Methodology,
    PortfolioStatus,
    Recommendation,
    TradeAction,
    TradingErrorCode,
)
from paper_arena.core.utils.clock import as_utc


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PositionResponse(_FromAttributes):
    """Open position in a portfolio."""

    ticker: str
    shares: int
    avg_cost_basis: float
    total_cost_basis: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    realized_pnl: float
    high_water_mark: float
    drawdown_from_high: float
    opened_at: datetime
    last_price_update: datetime


class TradeResponse(_FromAttributes):
    """Executed trade."""

    id: str
    ticker: str
    action: TradeAction
    shares: int
    price: float
    total_value: float
    timestamp: datetime
    confidence: float
    recommendation: Recommendation
    market_status: MarketSession
    is_valid: bool
    validation_warnings: list[str]
    realized_pnl: float | None = None
    realized_pnl_percent: float | None = None
    thesis_id: str | None = None
    debate_id: str | None = None


class ErrorLogResponse(_FromAttributes):
    id: str
    timestamp: datetime
    code: TradingErrorCode
    message: str
    severity: ErrorSeverity
    resolved: bool
    resolved_at: datetime | None = None


class PortfolioSummary(_FromAttributes):
    """Headline figures for one agent portfolio."""

    agent_id: str
    agent_name: str
    methodology: Methodology
    status: PortfolioStatus
    current_cash: float
    total_value: float
    total_return: float
    total_return_dollar: float
    max_drawdown: float
    current_drawdown: float
    total_trades: int
    num_positions: int


class PortfolioDetail(PortfolioSummary):
    """Full view of one agent portfolio."""

    initial_cash: float
    win_rate: float
    sharpe_ratio: float | None = Field(
        default=None, description="Annualized Sharpe ratio, null until enough daily snapshots"
    )
    volatility: float
    peak_value: float
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    largest_win: float
    largest_loss: float
    profit_factor: float | None = Field(
        ..., description="Gross wins over gross losses, null when there are wins and no losses"
    )
    positions: list[PositionResponse]
    recent_trades: list[TradeResponse]
    unresolved_errors: list[ErrorLogResponse]
    created_at: datetime
    updated_at: datetime
    last_trade_at: datetime | None = None


class ClosedPositionResponse(_FromAttributes):
    """A FIFO-matched round trip."""

    ticker: str
    shares: int
    cost_basis: float
    proceeds: float
    realized_pnl: float
    realized_pnl_percent: float
    open_date: datetime
    close_date: datetime
    holding_period_days: int
    open_trades: list[str]
    close_trades: list[str]


class LeaderboardEntryResponse(_FromAttributes):
    rank: int
    agent_id: str
    agent_name: str
    methodology: Methodology
    status: PortfolioStatus
    total_value: float
    total_return: float
    total_return_dollar: float
    sharpe_ratio: float | None = None
    win_rate: float
    max_drawdown: float
    total_trades: int


class MostTradedResponse(BaseModel):
    ticker: str
    trades: int


class CycleRequest(BaseModel):
    """Request model for running one agent decision cycle."""

    agent_id: str = Field(..., description="Agent whose portfolio trades")
    ticker: str = Field(..., min_length=1, max_length=10, description="Equity ticker")
    recommendation: Recommendation = Field(..., description="Thesis recommendation")
    confidence: float = Field(..., ge=0, le=100, description="Thesis confidence (0-100)")
    debate_winner: DebateWinner | None = Field(
        default=None, description="Side that won the debate (or give both scores)"
    )
    debate_margin: float = Field(default=0.0, ge=0, description="Debate score margin")
    bull_score: float | None = Field(default=None, ge=0, description="Bull side debate score")
    bear_score: float | None = Field(default=None, ge=0, description="Bear side debate score")
    price: float = Field(..., description="Current price of the ticker")
    price_timestamp: datetime | None = Field(
        default=None, description="When the price was observed (defaults to now)"
    )
    thesis_id: str | None = None
    debate_id: str | None = None

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("price_timestamp")
    @classmethod
    def normalize_price_timestamp(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else v

    @model_validator(mode="after")
    def require_debate_result(self) -> "CycleRequest":
        scored = self.bull_score is not None and self.bear_score is not None
        if self.debate_winner is None and not scored:
            raise ValueError("provide debate_winner or both bull_score and bear_score")
        return self


class CycleResponse(BaseModel):
    """Response model for a decision cycle."""

    action: TradeAction
    ticker: str
    shares: int
    estimated_price: float
    estimated_value: float
    confidence: float
    reasoning: str
    is_valid: bool
    executed: bool
    warnings: list[str]
    validation_errors: list[str]
    trade: TradeResponse | None = None
    error_code: TradingErrorCode | None = None


class PriceUpdateRequest(BaseModel):
    """Request model for re-marking open positions."""

    prices: dict[str, float] = Field(..., description="Latest price per ticker")
    agent_id: str | None = Field(default=None, description="Limit the update to one agent")

    @field_validator("prices")
    @classmethod
    def validate_prices(cls, v: dict[str, float]) -> dict[str, float]:
        for ticker, price in v.items():
            if not math.isfinite(price) or price <= 0:
                raise ValueError(f"Price for {ticker} must be a positive number")
        return {ticker.strip().upper(): price for ticker, price in v.items()}


class PriceUpdateResponse(BaseModel):
    updated_positions: int


class CorporateActionRequest(BaseModel):
    """Request model for applying a corporate action to one agent."""

    agent_id: str
    ticker: str = Field(..., min_length=1, max_length=10)
    action_type: CorporateActionType
    ratio: float | None = Field(default=None, gt=0, description="Split ratio (SPLIT)")
    amount: float | None = Field(default=None, gt=0, description="Dividend per share (DIVIDEND)")
    new_ticker: str | None = Field(default=None, description="New symbol (TICKER_CHANGE)")

    @field_validator("ticker", "new_ticker")
    @classmethod
    def normalize_ticker(cls, v: str | None) -> str | None:
        return v.strip().upper() if v else v


class CorporateActionResponse(_FromAttributes):
    id: str
    ticker: str
    action_type: CorporateActionType
    effective_date: datetime
    details: dict
    processed: bool


class ImportResponse(BaseModel):
    status: str
    portfolios: int
