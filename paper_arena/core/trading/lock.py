"""
Ledger locking.

LedgerLock is a FIFO mutual-exclusion lock with token ownership and
timeouts. LockRegistry hands out one LedgerLock per agent so independent
agents trade in parallel, or a single shared lock when striping is disabled.
"""

import threading
import uuid
from collections import deque
from collections.abc import Generator, Iterable
from contextlib import ExitStack, contextmanager

from loguru import logger

from paper_arena.core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from paper_arena.core.exceptions.trading import LockTimeoutError


class _Waiter:
    __slots__ = ("event", "token", "dropped")

    def __init__(self) -> None:
        self.event = threading.Event()
        self.token: str | None = None
        self.dropped = False


class LedgerLock:
    """FIFO lock whose ownership is tracked by an opaque token.

    Thread Safety:
        All bookkeeping happens under an internal mutex; waiters block on
        their own Event and are woken strictly in arrival order.
    """

    def __init__(self, name: str = "ledger", default_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self.name = name
        self.default_timeout = default_timeout
        self._mutex = threading.Lock()
        self._owner: str | None = None
        self._queue: deque[_Waiter] = deque()

    @property
    def is_locked(self) -> bool:
        with self._mutex:
            return self._owner is not None

    @property
    def queue_length(self) -> int:
        with self._mutex:
            return len(self._queue)

    def acquire(self, timeout: float | None = None) -> str | None:
        """Block until the lock is granted or timeout elapses.

        Args:
            timeout: Seconds to wait (defaults to default_timeout)

        Returns:
            Ownership token, or None on timeout or when dropped by force_release
        """
        wait_for = self.default_timeout if timeout is None else timeout

        with self._mutex:
            if self._owner is None and not self._queue:
                self._owner = _new_token()
                return self._owner
            waiter = _Waiter()
            self._queue.append(waiter)

        waiter.event.wait(wait_for)

        with self._mutex:
            if waiter.token is not None:
                return waiter.token
            if waiter in self._queue:
                self._queue.remove(waiter)

        if waiter.dropped:
            logger.warning(f"Waiter for {self.name} lock dropped by force release")
        else:
            logger.warning(f"Timed out after {wait_for:.1f}s waiting for {self.name} lock")
        return None

    def release(self, token: str) -> bool:
        """Release the lock and wake the next waiter.

        Returns:
            False if token does not own the lock, True otherwise
        """
        with self._mutex:
            if self._owner is None:
                return True
            if token != self._owner:
                logger.warning(f"{self.name} lock release rejected: owner mismatch")
                return False
            self._hand_off()
            return True

    @contextmanager
    def hold(self, timeout: float | None = None) -> Generator[str]:
        """Context manager that holds the lock for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not granted in time
        """
        token = self.acquire(timeout)
        if token is None:
            raise LockTimeoutError(self.default_timeout if timeout is None else timeout, self.name)
        try:
            yield token
        finally:
            self.release(token)

    def force_release(self) -> int:
        """Clear ownership and fail every pending waiter.

        Returns:
            Number of waiters that were dropped
        """
        with self._mutex:
            dropped = list(self._queue)
            self._queue.clear()
            self._owner = None
            for waiter in dropped:
                waiter.dropped = True
                waiter.event.set()

        if dropped:
            logger.warning(f"Force released {self.name} lock with {len(dropped)} pending waiters")
        return len(dropped)

    def _hand_off(self) -> None:
        # Caller holds self._mutex.
        if self._queue:
            waiter = self._queue.popleft()
            waiter.token = _new_token()
            self._owner = waiter.token
            waiter.event.set()
        else:
            self._owner = None


def _new_token() -> str:
    return uuid.uuid4().hex


class LockRegistry:
    """Hands out ledger locks per agent id.

    With per_agent_locks disabled every agent shares one global lock.
    """

    GLOBAL_KEY = "__global__"

    def __init__(
        self, per_agent_locks: bool = True, timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    ):
        self.per_agent_locks = per_agent_locks
        self.timeout = timeout
        self._locks: dict[str, LedgerLock] = {}
        self._registry_lock = threading.Lock()

    def for_agent(self, agent_id: str) -> LedgerLock:
        key = agent_id if self.per_agent_locks else self.GLOBAL_KEY
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = LedgerLock(name=f"ledger:{key}", default_timeout=self.timeout)
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, agent_id: str, timeout: float | None = None) -> Generator[str]:
        with self.for_agent(agent_id).hold(timeout) as token:
            yield token

    @contextmanager
    def hold_all(self, agent_ids: Iterable[str], timeout: float | None = None) -> Generator[None]:
        """Hold the locks of every given agent, acquired in sorted id order."""
        locks: list[LedgerLock] = []
        for agent_id in sorted(set(agent_ids)):
            lock = self.for_agent(agent_id)
            if lock not in locks:
                locks.append(lock)

        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock.hold(timeout))
            yield

    def force_release_all(self) -> int:
        with self._registry_lock:
            locks = list(self._locks.values())
        return sum(lock.force_release() for lock in locks)
