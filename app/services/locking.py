"""Keyed in-process locks for check-then-reserve sequences

Every booking path that reads availability and then writes assignments holds
the locks of the tables it touches for the whole transaction, plus the
customer phone when it may register a new customer. Keys are taken
in sorted order so overlapping key sets cannot deadlock. Rows are also locked
with SELECT ... FOR UPDATE inside the transaction, which extends the guard
across worker processes on PostgreSQL.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable, Iterable, List, Tuple

import structlog

from app.config import settings
from app.errors import ConflictError

logger = structlog.get_logger()


def table_key(table_id: int) -> Tuple[str, int]:
    return ("table", table_id)


def reservation_key(reservation_id: int) -> Tuple[str, int]:
    return ("reservation", reservation_id)


def customer_key(phone: str) -> Tuple[str, str]:
    return ("customer", phone)


class KeyedLockRegistry:
    """One asyncio.Lock per key, dropped again once nobody holds or awaits it"""

    def __init__(self, timeout: float = None):
        self.timeout = settings.lock_timeout_seconds if timeout is None else timeout
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def _checkout(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: Hashable) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def is_held(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, keys: Iterable[Hashable]):
        """Acquire every key or raise ConflictError after the timeout"""
        ordered = sorted(set(keys))
        acquired: List[Hashable] = []
        checked_out: List[Hashable] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    logger.warning("Lock acquisition timed out", key=key, timeout=self.timeout)
                    raise ConflictError(
                        "The requested tables are being booked by someone else. Please retry.",
                        code="LOCK_TIMEOUT",
                    )
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in reversed(checked_out):
                self._checkin(key)


# Shared by every request handled in this process
lock_registry = KeyedLockRegistry()


def get_lock_registry() -> KeyedLockRegistry:
    return lock_registry
