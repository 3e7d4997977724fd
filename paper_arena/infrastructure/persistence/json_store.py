"""
Single-document JSON file store.

The whole system state lives in one JSON file. Writes go to a temporary file
in the same directory which then replaces the target, so a crash never leaves
a half-written document behind.
"""

import errno
import os
import tempfile
import threading
from pathlib import Path

from loguru import logger

from paper_arena.core.exceptions.trading import PersistenceError, StorageFullError
from paper_arena.core.utils.clock import Clock, utc_now
from paper_arena.infrastructure.persistence.document import (
    PortfolioDocument,
    SystemMetaDocument,
    SystemStateDocument,
    dump_document,
    parse_document,
)


class JsonFileStateStore:
    """JSON file backed state store with an optional byte quota."""

    def __init__(self, path: Path | str, quota_bytes: int | None = None, clock: Clock = utc_now):
        self.path = Path(path)
        self.quota_bytes = quota_bytes
        self.clock = clock
        self._lock = threading.Lock()
        self._document: SystemStateDocument | None = None

    def read(self) -> SystemStateDocument | None:
        """Load and validate the stored document.

        Raises:
            DataCorruptionError: If the file is not a valid state document
        """
        with self._lock:
            if not self.path.exists():
                logger.info(f"No state file at {self.path}")
                return None
            text = self.path.read_text(encoding="utf-8")
            self._document = parse_document(text, SystemStateDocument, self.clock())
            logger.info(
                f"Loaded state from {self.path} "
                f"({len(self._document.portfolios)} portfolios, {len(text)} bytes)"
            )
            return self._document

    def write(self, document: SystemStateDocument) -> None:
        """Write the whole document atomically.

        Raises:
            StorageFullError: If the document exceeds the quota or the disk is full
            PersistenceError: If the file cannot be written for another reason
        """
        with self._lock:
            self._write_text(dump_document(document))
            self._document = document

    def write_portfolio(self, meta: SystemMetaDocument, portfolio: PortfolioDocument) -> None:
        with self._lock:
            portfolios = dict(self._document.portfolios) if self._document else {}
            portfolios[portfolio.agent_id] = portfolio
            document = SystemStateDocument.assemble(meta, list(portfolios.values()))
            self._write_text(dump_document(document))
            self._document = document

    def size_bytes(self) -> int:
        return self.path.stat().st_size if self.path.exists() else 0

    def _write_text(self, text: str) -> None:
        data = text.encode("utf-8")
        if self.quota_bytes is not None and len(data) > self.quota_bytes:
            raise StorageFullError(
                f"State document of {len(data)} bytes exceeds quota of {self.quota_bytes} bytes",
                size_bytes=len(data),
            )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                message = f"Disk full writing {self.path}"
                raise StorageFullError(message, size_bytes=len(data)) from e
            raise PersistenceError(
                f"Could not write {self.path}: {e}", context={"errno": e.errno}
            ) from e

        logger.debug(f"Wrote {len(data)} bytes to {self.path}")
