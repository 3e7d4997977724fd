"""
Unit tests for the trading service.
"""

from datetime import timedelta

import pytest

from paper_arena.core.enums import (
    DebateWinner,
    PortfolioStatus,
    Recommendation,
    TradeAction,
    TradingErrorCode,
)
from paper_arena.core.exceptions.trading import (
    DataCorruptionError,
    PersistenceError,
    PortfolioInactiveError,
)
from paper_arena.core.models.decision import DebateOutcome, Thesis
from paper_arena.core.trading.lock import LockRegistry
from paper_arena.core.trading.service import TradingService
from paper_arena.infrastructure.persistence import SqliteStateStore, StateRepository

from tests.conftest import FakeClock


def _buy(service: TradingService, agent_id: str = "warren", price: float = 50.0):
    return service.run_cycle(
        agent_id,
        Thesis("AAPL", Recommendation.STRONG_BUY, 80.0, id="thesis-1"),
        DebateOutcome(DebateWinner.BULL, 25.0, id="debate-1"),
        price,
        service.clock(),
    )


def _reload(service: TradingService, store: SqliteStateStore, clock: FakeClock) -> TradingService:
    locks = LockRegistry(timeout=1.0)
    fresh = TradingService(
        service.settings, StateRepository(store, locks, clock=clock), locks=locks, clock=clock
    )
    fresh.load_or_initialize()
    return fresh


class TestLifecycle:
    """Test suite for initialization, loading and import/export."""

    def test_should_initialize_default_roster(self, service: TradingService) -> None:
        state = service.state

        assert state is not None
        assert len(state.portfolios) == 8
        assert all(p.current_cash == 100000.0 for p in state.portfolios.values())
        assert state.portfolios["devil"].agent_name == "Devil's Advocate"

    def test_should_reload_persisted_state(
        self, service: TradingService, sqlite_store: SqliteStateStore, clock: FakeClock
    ) -> None:
        _buy(service)

        reloaded = _reload(service, sqlite_store, clock)

        portfolio = reloaded.get_portfolio("warren")
        assert portfolio.positions["AAPL"].shares == 360
        assert portfolio.current_cash == 82000.0
        assert reloaded.state is not None
        assert reloaded.state.total_trades == 1

    def test_should_discard_corrupted_state(
        self, service: TradingService, sqlite_store: SqliteStateStore, clock: FakeClock
    ) -> None:
        sqlite_store.connection.execute(
            "UPDATE portfolios SET document = ? WHERE agent_id = ?", ('{"agent_id": 1}', "warren")
        )

        reloaded = _reload(service, sqlite_store, clock)

        assert reloaded.state is not None
        assert [e.code for e in reloaded.state.system_errors] == [
            TradingErrorCode.DATA_CORRUPTION
        ]
        assert reloaded.get_portfolio("warren").positions == {}

    def test_should_round_trip_export_and_import(self, service: TradingService) -> None:
        _buy(service)
        exported = service.export_state()
        service.get_portfolio("warren").current_cash = 1.0

        service.import_state(exported)

        assert service.get_portfolio("warren").current_cash == 82000.0
        assert service.ledger.state is service.state

    def test_should_leave_state_untouched_on_bad_import(self, service: TradingService) -> None:
        before = service.state

        with pytest.raises(DataCorruptionError):
            service.import_state('{"version": 99}')

        assert service.state is before


class TestRunCycle:
    """Test suite for decision/execution cycles."""

    def test_should_execute_valid_buy(self, service: TradingService) -> None:
        result = _buy(service)

        assert result.executed
        assert result.trade is not None
        assert result.trade.shares == 360
        assert result.trade.thesis_id == "thesis-1"
        assert result.error is None

    def test_should_return_hold_without_trade(self, service: TradingService) -> None:
        result = service.run_cycle(
            "warren",
            Thesis("AAPL", Recommendation.BUY, 80.0),
            DebateOutcome(DebateWinner.BEAR, 15.0),
            50.0,
            service.clock(),
        )

        assert not result.executed
        assert result.decision.action == TradeAction.HOLD
        assert result.error is None

    def test_should_record_stale_price(self, service: TradingService) -> None:
        result = service.run_cycle(
            "warren",
            Thesis("AAPL", Recommendation.STRONG_BUY, 80.0),
            DebateOutcome(DebateWinner.BULL, 25.0),
            50.0,
            service.clock() - timedelta(minutes=10),
        )

        assert not result.executed
        assert result.decision.action == TradeAction.HOLD
        assert not result.decision.is_valid
        assert result.error is not None
        assert result.error.code == TradingErrorCode.STALE_PRICE
        assert service.get_portfolio("warren").error_log == [result.error]

    def test_should_record_invalid_price(self, service: TradingService) -> None:
        result = _buy(service, price=-1.0)

        assert result.error is not None
        assert result.error.code == TradingErrorCode.INVALID_PRICE

    def test_should_flag_unusual_move_from_remembered_price(
        self, service: TradingService
    ) -> None:
        service.update_position_prices({"MSFT": 100.0})

        result = service.run_cycle(
            "cathie",
            Thesis("MSFT", Recommendation.STRONG_BUY, 80.0),
            DebateOutcome(DebateWinner.BULL, 25.0),
            150.0,
            service.clock(),
        )

        assert result.error is not None
        assert result.error.code == TradingErrorCode.INVALID_PRICE

    def test_should_wrap_unexpected_errors(
        self, service: TradingService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(*args, **kwargs):
            raise RuntimeError("analysis backend down")

        monkeypatch.setattr(service.engine, "decide", explode)

        result = _buy(service)

        assert result.error is not None
        assert result.error.code == TradingErrorCode.API_FAILURE
        assert result.decision.action == TradeAction.HOLD
        assert result.decision.confidence == 0.0

    def test_should_report_executed_trade_when_save_fails(
        self, service: TradingService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def deny(*args, **kwargs):
            raise PersistenceError("Could not write state: permission denied")

        monkeypatch.setattr(service.repository.store, "write_portfolio", deny)

        result = _buy(service)

        portfolio = service.get_portfolio("warren")
        assert result.executed
        assert result.error is None
        assert portfolio.trades == [result.trade]
        assert [e.code for e in portfolio.error_log] == [TradingErrorCode.API_FAILURE]

    def test_should_isolate_agents(self, service: TradingService) -> None:
        _buy(service, "warren")

        assert service.get_portfolio("cathie").positions == {}

    def test_should_raise_for_unknown_agent(self, service: TradingService) -> None:
        with pytest.raises(KeyError):
            _buy(service, "nobody")


class TestOperations:
    """Test suite for price updates, corporate actions and operator actions."""

    def test_should_remark_every_agent(self, service: TradingService, clock: FakeClock) -> None:
        _buy(service, "warren")
        _buy(service, "cathie")

        updated = service.update_position_prices({"AAPL": 55.0})

        assert updated == 2
        assert service.get_portfolio("warren").total_value == 101800.0

    def test_should_rank_leaderboard_by_return(self, service: TradingService) -> None:
        _buy(service, "warren")
        service.update_position_prices({"AAPL": 55.0}, agent_id="warren")

        board = service.leaderboard()

        assert board[0].agent_id == "warren"
        assert board[0].rank == 1
        assert board[0].total_return == pytest.approx(0.018)
        assert board[0].sharpe_ratio is None
        assert [entry.rank for entry in board] == list(range(1, 9))

    def test_should_apply_split_through_service(self, service: TradingService) -> None:
        _buy(service)

        service.apply_split("warren", "AAPL", 2.0)

        assert service.get_portfolio("warren").positions["AAPL"].shares == 720

    def test_should_resume_paused_portfolio(self, service: TradingService) -> None:
        portfolio = service.get_portfolio("warren")
        portfolio.status = PortfolioStatus.PAUSED

        service.resume_portfolio("warren")

        assert portfolio.status == PortfolioStatus.ACTIVE

    def test_should_refuse_to_resume_liquidated(self, service: TradingService) -> None:
        service.get_portfolio("warren").status = PortfolioStatus.LIQUIDATED

        with pytest.raises(PortfolioInactiveError):
            service.resume_portfolio("warren")

    def test_should_resolve_logged_error(self, service: TradingService, clock: FakeClock) -> None:
        result = _buy(service, price=-1.0)
        assert result.error is not None

        entry = service.resolve_error("warren", result.error.id)

        assert entry.resolved
        assert entry.resolved_at == clock()
        with pytest.raises(KeyError):
            service.resolve_error("warren", "missing")

    def test_should_list_closed_positions(
        self, service: TradingService, clock: FakeClock
    ) -> None:
        _buy(service)
        clock.advance(minutes=1)
        service.run_cycle(
            "warren",
            Thesis("AAPL", Recommendation.STRONG_SELL, 80.0),
            DebateOutcome(DebateWinner.BEAR, 25.0),
            55.0,
            clock(),
        )

        closed = service.closed_positions("warren")

        assert len(closed) == 1
        assert closed[0].shares == 360
        assert closed[0].realized_pnl == pytest.approx(1800.0)
