"""
State export/import API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette.concurrency import run_in_threadpool

from paper_arena.api.dependencies import get_trading_service
from paper_arena.api.schemas.api_models import ImportResponse
from paper_arena.core.exceptions.trading import DataCorruptionError
from paper_arena.core.trading.service import TradingService

router = APIRouter()


@router.get("/export")
def export_state(service: TradingService = Depends(get_trading_service)) -> Response:
    """Download the full system state as JSON."""
    return Response(
        content=service.export_state(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="paper_arena_state.json"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_state(
    request: Request, service: TradingService = Depends(get_trading_service)
) -> ImportResponse:
    """Replace the system state with an exported document."""
    body = await request.body()
    try:
        state = await run_in_threadpool(service.import_state, body)
    except DataCorruptionError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, **e.context}) from e
    return ImportResponse(status="imported", portfolios=len(state.portfolios))
