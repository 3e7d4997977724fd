"""
Trading API endpoints.
"""

from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException

from paper_arena.api.dependencies import get_trading_service
from paper_arena.api.schemas.api_models import (
    CorporateActionRequest,
    CorporateActionResponse,
    CycleRequest,
    CycleResponse,
    PriceUpdateRequest,
    PriceUpdateResponse,
    TradeResponse,
)
from paper_arena.core.enums import CorporateActionType
from paper_arena.core.exceptions.trading import TradingError
from paper_arena.core.models.decision import DebateOutcome, Thesis
from paper_arena.core.trading.service import TradingService

T = TypeVar("T")

router = APIRouter()


@router.post("/cycle", response_model=CycleResponse)
def run_cycle(
    request: CycleRequest, service: TradingService = Depends(get_trading_service)
) -> CycleResponse:
    """Run one decide-and-execute cycle for an agent."""
    try:
        thesis = Thesis(
            ticker=request.ticker,
            recommendation=request.recommendation,
            confidence=request.confidence,
            id=request.thesis_id,
        )
    except TradingError as e:
        raise HTTPException(status_code=422, detail=e.message) from e

    if request.debate_winner is None:
        debate = DebateOutcome.from_scores(
            request.bull_score, request.bear_score, debate_id=request.debate_id
        )
    else:
        debate = DebateOutcome(
            winner=request.debate_winner, margin=request.debate_margin, id=request.debate_id
        )
    price_timestamp = request.price_timestamp or service.clock()

    try:
        result = service.run_cycle(request.agent_id, thesis, debate, request.price, price_timestamp)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {request.agent_id}") from None

    decision = result.decision
    return CycleResponse(
        action=decision.action,
        ticker=decision.ticker,
        shares=decision.shares,
        estimated_price=decision.estimated_price,
        estimated_value=decision.estimated_value,
        confidence=decision.confidence,
        reasoning=decision.reasoning,
        is_valid=decision.is_valid,
        executed=result.executed,
        warnings=list(decision.warnings),
        validation_errors=list(decision.validation_errors),
        trade=TradeResponse.model_validate(result.trade) if result.trade else None,
        error_code=result.error.code if result.error else None,
    )


@router.post("/prices", response_model=PriceUpdateResponse)
def update_prices(
    request: PriceUpdateRequest, service: TradingService = Depends(get_trading_service)
) -> PriceUpdateResponse:
    """Re-mark open positions at the latest prices."""
    try:
        updated = service.update_position_prices(request.prices, agent_id=request.agent_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {request.agent_id}") from None
    return PriceUpdateResponse(updated_positions=updated)


@router.post("/corporate-actions", response_model=CorporateActionResponse)
def apply_corporate_action(
    request: CorporateActionRequest, service: TradingService = Depends(get_trading_service)
) -> CorporateActionResponse:
    """Apply a split, dividend or ticker change to one agent's portfolio."""
    try:
        match request.action_type:
            case CorporateActionType.SPLIT:
                ratio = _required(request.ratio, "ratio")
                action = service.apply_split(request.agent_id, request.ticker, ratio)
            case CorporateActionType.DIVIDEND:
                amount = _required(request.amount, "amount")
                action = service.apply_dividend(request.agent_id, request.ticker, amount)
            case CorporateActionType.TICKER_CHANGE:
                new_ticker = _required(request.new_ticker, "new_ticker")
                action = service.apply_ticker_change(
                    request.agent_id, request.ticker, new_ticker
                )
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {request.agent_id}") from None
    except TradingError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return CorporateActionResponse.model_validate(action)


def _required(value: T | None, name: str) -> T:
    if value is None:
        raise HTTPException(status_code=422, detail=f"{name} is required for this action")
    return value
