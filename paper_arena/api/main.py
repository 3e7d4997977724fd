"""
FastAPI main application for the paper trading arena.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paper_arena.core.config import get_settings
from paper_arena.core.log_config import configure_logging

from .routers import leaderboard, portfolios, state, trading

settings = get_settings()
configure_logging(settings.log_level, json=settings.log_json)

app = FastAPI(
    title=f"{settings.app_name} API",
    version="0.1.0",
    description="API for the multi-agent paper trading ledger",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
)

app.include_router(portfolios.router, prefix="/api/portfolios", tags=["portfolios"])
app.include_router(leaderboard.router, prefix="/api/leaderboard", tags=["leaderboard"])
app.include_router(trading.router, prefix="/api/trading", tags=["trading"])
app.include_router(state.router, prefix="/api/state", tags=["state"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint returning API information."""
    return {"message": f"{settings.app_name} API", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
