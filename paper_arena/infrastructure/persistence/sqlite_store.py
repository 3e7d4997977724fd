"""
SQLite backed state store.

One row per agent id holds that agent's portfolio document and a single
system row holds the system-level fields. Each write runs in its own
transaction, so a failed write leaves the previous state intact.
"""

import json
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from paper_arena.core.exceptions.trading import (
    DataCorruptionError,
    PersistenceError,
    StorageFullError,
)
from paper_arena.core.utils.clock import Clock, utc_now
from paper_arena.infrastructure.persistence.document import (
    PortfolioDocument,
    SystemMetaDocument,
    SystemStateDocument,
    dump_document,
    validate_document,
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS system_state (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        document TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS portfolios (
        agent_id TEXT PRIMARY KEY,
        document TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
)


class SqliteStateStore:
    """State store keyed by agent id inside a single SQLite database."""

    def __init__(
        self,
        db_path: Path | str = ":memory:",
        quota_bytes: int | None = None,
        clock: Clock = utc_now,
    ):
        self.db_path = str(db_path)
        self.quota_bytes = quota_bytes
        self.clock = clock
        self._lock = threading.Lock()
        self.connection: sqlite3.Connection | None = None

    def initialize(self) -> None:
        """Open the database and create tables if they don't exist."""
        if self.connection is not None:
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self.connection.row_factory = sqlite3.Row

        with self.connection:
            for statement in _SCHEMA:
                self.connection.execute(statement)
        if self.quota_bytes is not None:
            page_size = self.connection.execute("PRAGMA page_size").fetchone()[0]
            max_pages = max(1, self.quota_bytes // page_size)
            self.connection.execute(f"PRAGMA max_page_count = {max_pages}")

        logger.info(f"SqliteStateStore initialized with database: {self.db_path}")

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def read(self) -> SystemStateDocument | None:
        """Load and validate the stored state.

        Raises:
            DataCorruptionError: If a stored row is not a valid document
        """
        conn = self._conn()
        with self._lock:
            row = conn.execute("SELECT document FROM system_state WHERE id = 1").fetchone()
            if row is None:
                logger.info(f"No state stored in {self.db_path}")
                return None
            rows = conn.execute("SELECT agent_id, document FROM portfolios").fetchall()

        try:
            data = json.loads(row["document"])
            data["portfolios"] = {r["agent_id"]: json.loads(r["document"]) for r in rows}
        except (ValueError, TypeError) as e:
            raise DataCorruptionError(f"Stored state is not valid JSON: {e}") from e

        document = validate_document(data, SystemStateDocument, self.clock())
        logger.info(f"Loaded state from {self.db_path} ({len(document.portfolios)} portfolios)")
        return document

    def write(self, document: SystemStateDocument) -> None:
        """Replace all stored rows in one transaction.

        Raises:
            StorageFullError: If the database is full or over quota
            PersistenceError: If the write fails for another reason
        """
        now = self.clock().isoformat()
        conn = self._conn()
        with self._lock, _translate_storage_errors(self.db_path):
            with conn:
                self._upsert_system(conn, document.meta(), now)
                conn.execute("DELETE FROM portfolios")
                conn.executemany(
                    "INSERT INTO portfolios (agent_id, document, updated_at) VALUES (?, ?, ?)",
                    [
                        (agent_id, dump_document(portfolio), now)
                        for agent_id, portfolio in document.portfolios.items()
                    ],
                )
        logger.debug(f"Wrote {len(document.portfolios)} portfolios to {self.db_path}")

    def write_portfolio(self, meta: SystemMetaDocument, portfolio: PortfolioDocument) -> None:
        now = self.clock().isoformat()
        conn = self._conn()
        with self._lock, _translate_storage_errors(self.db_path):
            with conn:
                self._upsert_system(conn, meta, now)
                conn.execute(
                    """
                    INSERT INTO portfolios (agent_id, document, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(agent_id) DO UPDATE SET
                        document = excluded.document,
                        updated_at = excluded.updated_at
                    """,
                    (portfolio.agent_id, dump_document(portfolio), now),
                )

    def size_bytes(self) -> int:
        conn = self._conn()
        page_count = conn.execute("PRAGMA page_count").fetchone()[0]
        page_size = conn.execute("PRAGMA page_size").fetchone()[0]
        return page_count * page_size

    def _conn(self) -> sqlite3.Connection:
        if self.connection is None:
            self.initialize()
        return self.connection

    @staticmethod
    def _upsert_system(conn: sqlite3.Connection, meta: SystemMetaDocument, now: str) -> None:
        conn.execute(
            """
            INSERT INTO system_state (id, document, updated_at) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                document = excluded.document,
                updated_at = excluded.updated_at
            """,
            (dump_document(meta), now),
        )


@contextmanager
def _translate_storage_errors(db_path: str) -> Generator[None]:
    try:
        yield
    except sqlite3.Error as e:
        if getattr(e, "sqlite_errorcode", None) == sqlite3.SQLITE_FULL:
            raise StorageFullError(f"SQLite database {db_path} is full") from e
        raise PersistenceError(
            f"SQLite write to {db_path} failed: {e}",
            context={"sqlite_errorcode": getattr(e, "sqlite_errorcode", None)},
        ) from e
