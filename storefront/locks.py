"""
Keyed asyncio locks with bounded waits.

Every mutation of a product's stock or of an order's state happens while
holding the lock for that key. Several keys are always acquired in sorted
order so two operations can never wait on each other in a cycle.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, List, Tuple

from storefront.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class KeyedLocks:
    """A family of asyncio locks, one per key, created on demand.

    An entry lives only while some caller holds or waits for its key.
    """

    def __init__(self, name: str, timeout: float = 2.0) -> None:
        self.name = name
        self.timeout = timeout
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        # Callers holding or waiting for each key
        self._users: Dict[Hashable, int] = {}

    def _checkout(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: Hashable) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """Hold the locks for all ``keys`` for the duration of the block.

        Raises:
            LockTimeoutError: if any lock is not acquired within the
                timeout; locks already taken are released first
        """
        ordered: List[Tuple[str, Hashable]] = sorted(
            {(repr(key), key) for key in keys}
        )
        acquired: List[asyncio.Lock] = []
        checked_out: List[Hashable] = []
        try:
            for _, key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                try:
                    await asyncio.wait_for(lock.acquire(), self.timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        "Timed out waiting for lock",
                        extra={
                            "lock_family": self.name,
                            "lock_key": repr(key),
                            "timeout_seconds": self.timeout,
                        },
                    )
                    raise LockTimeoutError(
                        f"Timed out waiting for {self.name} lock {key!r}"
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)
