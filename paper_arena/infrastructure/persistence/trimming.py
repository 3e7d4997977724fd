"""
History trimming applied before every persisted write.

Trades and snapshots keep the most recent entries, the error log keeps all
unresolved entries first and then the most recent resolved ones, and
corporate actions keep the most recent entries. Relative order is preserved.
"""

import dataclasses
from typing import TypeVar
from dataclasses import dataclass

from loguru import logger

from paper_arena.core import constants
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.records import ErrorLogEntry

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryLimits:
    """Maximum history lengths kept per portfolio."""

    trades: int = constants.MAX_TRADES_PER_PORTFOLIO
    snapshots: int = constants.MAX_PERFORMANCE_SNAPSHOTS
    errors: int = constants.MAX_ERROR_LOG
    resolved_errors: int = constants.MAX_RESOLVED_ERRORS_KEPT
    corporate_actions: int = constants.MAX_CORPORATE_ACTIONS

    @classmethod
    def emergency(cls) -> "HistoryLimits":
        """Limits for the minimal snapshot written after a storage-full failure."""
        return cls(
            trades=constants.EMERGENCY_TRADES,
            snapshots=constants.EMERGENCY_SNAPSHOTS,
            errors=constants.EMERGENCY_ERRORS,
            resolved_errors=0,
            corporate_actions=constants.EMERGENCY_CORPORATE_ACTIONS,
        )


NORMAL_LIMITS = HistoryLimits()
EMERGENCY_LIMITS = HistoryLimits.emergency()


def _keep_last(items: list[T], limit: int) -> list[T]:
    if limit <= 0:
        return []
    return items[-limit:]


def trim_error_log(entries: list[ErrorLogEntry], limits: HistoryLimits) -> list[ErrorLogEntry]:
    """Keep unresolved entries first, then the most recent resolved ones.

    The result holds at most ``limits.errors`` entries in their original order.
    """
    if len(entries) <= limits.errors and (
        sum(1 for e in entries if e.resolved) <= limits.resolved_errors
    ):
        return list(entries)

    unresolved = [i for i, e in enumerate(entries) if not e.resolved]
    unresolved = _keep_last(unresolved, limits.errors)

    resolved_budget = min(limits.resolved_errors, limits.errors - len(unresolved))
    resolved = [i for i, e in enumerate(entries) if e.resolved]
    resolved = _keep_last(resolved, resolved_budget)

    kept = sorted(unresolved + resolved)
    return [entries[i] for i in kept]


def trim_portfolio(portfolio: AgentPortfolio, limits: HistoryLimits = NORMAL_LIMITS) -> int:
    """Trim a portfolio's history lists in place.

    Returns:
        Number of entries removed across all lists
    """
    before = _history_size(portfolio)

    portfolio.trades = _keep_last(portfolio.trades, limits.trades)
    portfolio.performance_history = _keep_last(portfolio.performance_history, limits.snapshots)
    portfolio.error_log = trim_error_log(portfolio.error_log, limits)
    portfolio.corporate_actions = _keep_last(
        portfolio.corporate_actions, limits.corporate_actions
    )

    removed = before - _history_size(portfolio)
    if removed:
        logger.debug(f"Trimmed {removed} history entries from {portfolio.agent_id}")
    return removed


def trimmed_copy(portfolio: AgentPortfolio, limits: HistoryLimits) -> AgentPortfolio:
    """Return a shallow copy with trimmed history; the live portfolio is untouched."""
    copy = dataclasses.replace(
        portfolio,
        trades=list(portfolio.trades),
        performance_history=list(portfolio.performance_history),
        error_log=list(portfolio.error_log),
        corporate_actions=list(portfolio.corporate_actions),
    )
    trim_portfolio(copy, limits)
    return copy


def _history_size(portfolio: AgentPortfolio) -> int:
    return (
        len(portfolio.trades)
        + len(portfolio.performance_history)
        + len(portfolio.error_log)
        + len(portfolio.corporate_actions)
    )
