"""
State repository.

Sits between the trading service and a state store: trims history before
every write, falls back to an emergency minimal snapshot when the store is
full, and converts between domain objects and persisted documents.
"""

import threading

from loguru import logger

from paper_arena.core.exceptions.trading import (
    DataCorruptionError,
    PersistenceError,
    StorageFullError,
    ValidationError,
)
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.records import ErrorLogEntry
from paper_arena.core.models.system_state import TradingSystemState
from paper_arena.core.protocols import IStateStore
from paper_arena.core.trading.lock import LockRegistry
from paper_arena.core.utils.clock import Clock, utc_now
from paper_arena.infrastructure.persistence.document import (
    PortfolioDocument,
    SystemMetaDocument,
    SystemStateDocument,
    dump_document,
    parse_document,
)
from paper_arena.infrastructure.persistence.trimming import (
    EMERGENCY_LIMITS,
    NORMAL_LIMITS,
    trim_error_log,
    trim_portfolio,
    trimmed_copy,
)


class StateRepository:
    """Loads and saves the trading system state through a store."""

    def __init__(self, store: IStateStore, locks: LockRegistry, clock: Clock = utc_now):
        self.store = store
        self.locks = locks
        self.clock = clock
        self._write_lock = threading.Lock()

    def load(self) -> TradingSystemState | None:
        """Load the stored state.

        Returns:
            The stored state, or None if nothing has been stored yet

        Raises:
            DataCorruptionError: If the stored document is invalid
        """
        document = self.store.read()
        if document is None:
            return None
        return _to_domain(document)

    def save_portfolio(self, state: TradingSystemState, portfolio: AgentPortfolio) -> None:
        """Persist one portfolio and the system counters.

        Called with the agent's lock held. Never raises PersistenceError: a
        failed write (including a failed emergency write after StorageFullError)
        is logged and recorded in the portfolio's error log, so an applied
        trade is never reported as failed because of storage.
        """
        trim_portfolio(portfolio)
        try:
            self._write_portfolio(state, portfolio)
            return
        except StorageFullError as e:
            logger.warning(
                f"Storage full saving {portfolio.agent_id}, writing emergency snapshot: {e}"
            )
        except PersistenceError as e:
            logger.error(f"Saving {portfolio.agent_id} failed: {e}")
            self._record_storage_failure(portfolio, e)
            return

        try:
            self._write_portfolio(state, trimmed_copy(portfolio, EMERGENCY_LIMITS))
            logger.info(f"Emergency snapshot saved for {portfolio.agent_id}")
        except PersistenceError as e:
            logger.error(f"Emergency snapshot failed for {portfolio.agent_id}: {e}")
            self._record_storage_failure(portfolio, e)

    def _write_portfolio(self, state: TradingSystemState, portfolio: AgentPortfolio) -> None:
        # system counters are read inside the write lock so a slower writer
        # cannot persist older counters over newer ones
        document = PortfolioDocument.from_domain(portfolio)
        with self._write_lock:
            with state.counters_lock:
                meta = SystemMetaDocument.from_domain(state)
            self.store.write_portfolio(meta, document)

    def save_all(self, state: TradingSystemState) -> None:
        """Persist the whole state while holding every agent lock."""
        with self.locks.hold_all(state.portfolios):
            for portfolio in state.portfolios.values():
                trim_portfolio(portfolio)
            try:
                self.store.write(SystemStateDocument.from_domain(state))
                return
            except StorageFullError as e:
                logger.warning(f"Storage full saving system state, writing emergency snapshot: {e}")

            meta = SystemMetaDocument.from_domain(state)
            minimal = [
                PortfolioDocument.from_domain(trimmed_copy(p, EMERGENCY_LIMITS))
                for p in state.portfolios.values()
            ]
            try:
                self.store.write(SystemStateDocument.assemble(meta, minimal))
                logger.info("Emergency snapshot saved for system state")
            except StorageFullError as e:
                logger.error(f"Emergency snapshot of system state failed: {e}")
                for portfolio in state.portfolios.values():
                    self._record_storage_failure(portfolio, e)

    def export_state(self, state: TradingSystemState) -> str:
        """Serialize the full state, without trimming, to JSON text."""
        with self.locks.hold_all(state.portfolios):
            return dump_document(SystemStateDocument.from_domain(state))

    def import_state(self, text: str | bytes) -> TradingSystemState:
        """Parse and validate exported JSON text.

        Raises:
            DataCorruptionError: If the text is not a valid state document
        """
        return _to_domain(parse_document(text, SystemStateDocument, self.clock()))

    def _record_storage_failure(self, portfolio: AgentPortfolio, error: PersistenceError) -> None:
        portfolio.error_log.append(ErrorLogEntry.from_error(error, self.clock()))
        portfolio.error_log = trim_error_log(portfolio.error_log, NORMAL_LIMITS)


def _to_domain(document: SystemStateDocument) -> TradingSystemState:
    try:
        return document.to_domain()
    except ValidationError as e:
        raise DataCorruptionError(f"Stored state is inconsistent: {e.message}") from e
