"""
Shared fixtures for unit and integration tests.
"""

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from loguru import logger

from paper_arena.core.config import Settings
from paper_arena.core.enums import MarketSession, Methodology, Recommendation, TradeAction
from paper_arena.core.models.decision import TradeDecision
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.trade import Trade, new_trade_id
from paper_arena.core.trading.lock import LockRegistry
from paper_arena.core.trading.service import TradingService
from paper_arena.infrastructure.persistence import SqliteStateStore, StateRepository

# Wednesday 2026-10-14 11:00 America/New_York, inside the regular session
MARKET_OPEN_NOW = datetime(2026, 10, 14, 15, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for deterministic tests."""

    def __init__(self, now: datetime = MARKET_OPEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def portfolio(clock: FakeClock) -> AgentPortfolio:
    return AgentPortfolio.create("warren", "Warren", Methodology.VALUE, 100000.0, clock())


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Factory for executed trades with sensible defaults."""

    def _make(
        action: TradeAction,
        ticker: str,
        shares: int,
        price: float,
        timestamp: datetime = MARKET_OPEN_NOW,
        **overrides: Any,
    ) -> Trade:
        values: dict[str, Any] = {
            "id": new_trade_id(),
            "ticker": ticker,
            "action": action,
            "shares": shares,
            "price": price,
            "total_value": shares * price,
            "timestamp": timestamp,
            "confidence": 75.0,
            "recommendation": (
                Recommendation.BUY if action == TradeAction.BUY else Recommendation.SELL
            ),
            "market_status": MarketSession.OPEN,
        }
        values.update(overrides)
        return Trade(**values)

    return _make


@pytest.fixture
def make_decision() -> Callable[..., TradeDecision]:
    """Factory for executable decisions that bypass the decision engine."""

    def _make(
        action: TradeAction, ticker: str, shares: int, price: float, **overrides: Any
    ) -> TradeDecision:
        values: dict[str, Any] = {
            "action": action,
            "ticker": ticker,
            "shares": shares,
            "estimated_price": price,
            "estimated_value": shares * price,
            "confidence": 80.0,
            "reasoning": "test decision",
            "recommendation": (
                Recommendation.BUY if action == TradeAction.BUY else Recommendation.SELL
            ),
            "is_valid": True,
        }
        values.update(overrides)
        return TradeDecision(**values)

    return _make


@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]]]:
    """Capture loguru records emitted during a test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def sqlite_store(clock: FakeClock) -> Generator[SqliteStateStore]:
    store = SqliteStateStore(":memory:", clock=clock)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def service(settings: Settings, sqlite_store: SqliteStateStore, clock: FakeClock) -> TradingService:
    """Service over an in-memory SQLite store, initialized with the default roster."""
    locks = LockRegistry(timeout=1.0)
    repository = StateRepository(sqlite_store, locks, clock=clock)
    service = TradingService(settings, repository, locks=locks, clock=clock)
    service.load_or_initialize()
    return service
