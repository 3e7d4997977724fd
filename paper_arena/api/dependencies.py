"""
FastAPI dependencies.
"""

from functools import lru_cache

from paper_arena.core.config import get_settings
from paper_arena.core.trading.service import TradingService


@lru_cache
def get_trading_service() -> TradingService:
    """Build the process-wide trading service and load its state."""
    service = TradingService.from_settings(get_settings())
    service.load_or_initialize()
    return service
