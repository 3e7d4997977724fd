"""
Leaderboard API endpoints.
"""

from fastapi import APIRouter, Depends, Query

from paper_arena.api.dependencies import get_trading_service
from paper_arena.api.schemas.api_models import LeaderboardEntryResponse, MostTradedResponse
from paper_arena.core.trading.service import TradingService

router = APIRouter()


@router.get("", response_model=list[LeaderboardEntryResponse])
def get_leaderboard(
    service: TradingService = Depends(get_trading_service),
) -> list[LeaderboardEntryResponse]:
    """Agents ranked by total return, best first."""
    return [LeaderboardEntryResponse.model_validate(e) for e in service.leaderboard()]


@router.get("/most-traded", response_model=list[MostTradedResponse])
def get_most_traded(
    limit: int = Query(10, ge=1, le=100),
    service: TradingService = Depends(get_trading_service),
) -> list[MostTradedResponse]:
    """Tickers with the most executed trades across all agents."""
    return [
        MostTradedResponse(ticker=ticker, trades=count)
        for ticker, count in service.most_traded(limit)
    ]
