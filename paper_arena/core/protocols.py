"""
Core protocols.

This module defines the storage interface the trading service depends on,
so that the domain layer never imports a concrete store.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from paper_arena.infrastructure.persistence.document import (
        PortfolioDocument,
        SystemMetaDocument,
        SystemStateDocument,
    )


class IStateStore(Protocol):
    """Protocol for a persisted system state store.

    Implementations validate on read and raise DataCorruptionError for a
    structurally invalid document, and raise StorageFullError when a write
    is rejected for lack of space.
    """

    def read(self) -> "SystemStateDocument | None":
        """Load the stored document, or None if nothing has been stored yet."""
        ...

    def write(self, document: "SystemStateDocument") -> None:
        """Replace the whole stored document."""
        ...

    def write_portfolio(
        self, meta: "SystemMetaDocument", portfolio: "PortfolioDocument"
    ) -> None:
        """Store one portfolio together with the current system-level fields."""
        ...

    def size_bytes(self) -> int:
        """Current size of the stored state."""
        ...
