"""
Portfolio API endpoints.
"""

import math

from fastapi import APIRouter, Depends, HTTPException

from paper_arena.api.dependencies import get_trading_service
from paper_arena.api.schemas.api_models import (
    ClosedPositionResponse,
    ErrorLogResponse,
    PortfolioDetail,
    PortfolioSummary,
    PositionResponse,
    TradeResponse,
)
from paper_arena.core.exceptions.trading import PortfolioInactiveError
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.trading.service import TradingService
from paper_arena.core.types import SharpeValue

RECENT_TRADES = 50

router = APIRouter()


def _summary_fields(portfolio: AgentPortfolio) -> dict:
    return {
        "agent_id": portfolio.agent_id,
        "agent_name": portfolio.agent_name,
        "methodology": portfolio.methodology,
        "status": portfolio.status,
        "current_cash": portfolio.current_cash,
        "total_value": portfolio.total_value,
        "total_return": portfolio.total_return,
        "total_return_dollar": portfolio.total_return_dollar,
        "max_drawdown": portfolio.max_drawdown,
        "current_drawdown": portfolio.current_drawdown,
        "total_trades": portfolio.total_trades,
        "num_positions": len(portfolio.positions),
    }


def to_detail(portfolio: AgentPortfolio) -> PortfolioDetail:
    sharpe = portfolio.sharpe_ratio
    return PortfolioDetail(
        **_summary_fields(portfolio),
        initial_cash=portfolio.initial_cash,
        win_rate=portfolio.win_rate,
        sharpe_ratio=sharpe.value if isinstance(sharpe, SharpeValue) else None,
        volatility=portfolio.volatility,
        peak_value=portfolio.peak_value,
        winning_trades=portfolio.winning_trades,
        losing_trades=portfolio.losing_trades,
        avg_win=portfolio.avg_win,
        avg_loss=portfolio.avg_loss,
        largest_win=portfolio.largest_win,
        largest_loss=portfolio.largest_loss,
        profit_factor=portfolio.profit_factor if math.isfinite(portfolio.profit_factor) else None,
        positions=[PositionResponse.model_validate(p) for p in portfolio.positions.values()],
        recent_trades=[
            TradeResponse.model_validate(t) for t in portfolio.trades[-RECENT_TRADES:]
        ],
        unresolved_errors=[
            ErrorLogResponse.model_validate(e) for e in portfolio.unresolved_errors()
        ],
        created_at=portfolio.created_at,
        updated_at=portfolio.updated_at,
        last_trade_at=portfolio.last_trade_at,
    )


def _get_portfolio(service: TradingService, agent_id: str) -> AgentPortfolio:
    try:
        return service.get_portfolio(agent_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown agent: {agent_id}") from None


@router.get("", response_model=list[PortfolioSummary])
def list_portfolios(
    service: TradingService = Depends(get_trading_service),
) -> list[PortfolioSummary]:
    """List every agent portfolio."""
    state = service.state
    portfolios = state.portfolios.values() if state else []
    return [PortfolioSummary(**_summary_fields(p)) for p in portfolios]


@router.get("/{agent_id}", response_model=PortfolioDetail)
def get_portfolio(
    agent_id: str, service: TradingService = Depends(get_trading_service)
) -> PortfolioDetail:
    """Get one portfolio with positions, recent trades and open errors."""
    return to_detail(_get_portfolio(service, agent_id))


@router.get("/{agent_id}/closed-positions", response_model=list[ClosedPositionResponse])
def get_closed_positions(
    agent_id: str, service: TradingService = Depends(get_trading_service)
) -> list[ClosedPositionResponse]:
    """Get FIFO-matched round trips for one portfolio."""
    _get_portfolio(service, agent_id)
    return [ClosedPositionResponse.model_validate(c) for c in service.closed_positions(agent_id)]


@router.post("/{agent_id}/resume", response_model=PortfolioDetail)
def resume_portfolio(
    agent_id: str, service: TradingService = Depends(get_trading_service)
) -> PortfolioDetail:
    """Reactivate a paused portfolio."""
    _get_portfolio(service, agent_id)
    try:
        return to_detail(service.resume_portfolio(agent_id))
    except PortfolioInactiveError as e:
        raise HTTPException(status_code=409, detail=e.message) from e


@router.post("/{agent_id}/errors/{error_id}/resolve", response_model=ErrorLogResponse)
def resolve_error(
    agent_id: str, error_id: str, service: TradingService = Depends(get_trading_service)
) -> ErrorLogResponse:
    """Mark an error log entry resolved."""
    try:
        return ErrorLogResponse.model_validate(service.resolve_error(agent_id, error_id))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0])) from e
