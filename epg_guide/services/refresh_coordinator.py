"""
Refresh Coordination

Serializes guide refreshes so two loads never interleave their store writes.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshSkipped(Exception):
    """Raised when a refresh is requested while another one is running"""
    pass


class RefreshCoordinator:
    """
    Runs at most one guide refresh at a time.

    A request arriving while a refresh holds the lock is rejected instead of
    queued, so callers never wait behind a slow download.
    """

    def __init__(self):
        self._refresh_lock = asyncio.Lock()

    async def execute(self, refresh_func: Callable[[], Awaitable[T]]) -> T:
        """
        Execute a refresh with concurrency protection.

        Raises:
            RefreshSkipped: If a refresh is already in progress
            Any exception raised by refresh_func
        """
        if self._refresh_lock.locked():
            logger.warning("Guide refresh already in progress, skipping this request")
            raise RefreshSkipped("Guide refresh already in progress")

        async with self._refresh_lock:
            return await refresh_func()

    def is_refreshing(self) -> bool:
        return self._refresh_lock.locked()
