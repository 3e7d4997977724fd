"""
Core enumerations for the paper trading arena.

This module provides centralized enumerations for domain concepts
like recommendations, debate sides, trade actions and portfolio states.
"""

from .methodology import Methodology
from .recommendations import DebateWinner, Recommendation
from .trade_types import (
    CorporateActionType,
    ErrorSeverity,
    MarketSession,
    PortfolioStatus,
    TradeAction,
    TradingErrorCode,
)

__all__ = [
    "CorporateActionType",
    "DebateWinner",
    "ErrorSeverity",
    "MarketSession",
    "Methodology",
    "PortfolioStatus",
    "Recommendation",
    "TradeAction",
    "TradingErrorCode",
]
