"""
Per-event serialization for capacity-sensitive operations.
Uses the Redis lock when distributed locks are enabled, otherwise a
process-local asyncio lock keyed by event ID.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Tuple, Type, TypeVar
import logging

from ewm.core.exceptions import ConflictError, LockAcquisitionError
from ewm.core.retry import retry_with_backoff
from ewm.db.redis_client import get_distributed_lock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventLockProvider:
    """
    Hands out one lock per event.
    """

    def __init__(self):
        self._local_locks: Dict[int, asyncio.Lock] = {}
        # Holders plus waiters per event; the lock is dropped when this reaches zero
        self._local_users: Dict[int, int] = {}

    def _checkout_local(self, event_id: int) -> asyncio.Lock:
        self._local_users[event_id] = self._local_users.get(event_id, 0) + 1
        return self._local_locks.setdefault(event_id, asyncio.Lock())

    def _return_local(self, event_id: int) -> None:
        remaining = self._local_users.get(event_id, 0) - 1
        if remaining > 0:
            self._local_users[event_id] = remaining
        else:
            self._local_users.pop(event_id, None)
            self._local_locks.pop(event_id, None)

    @property
    def local_lock_count(self) -> int:
        """Number of events with a live in-process lock."""
        return len(self._local_locks)

    def reset(self) -> None:
        """Forget all in-process locks."""
        self._local_locks.clear()
        self._local_users.clear()

    @asynccontextmanager
    async def hold(self, event_id: int, consistency_config: Dict[str, Any]) -> AsyncIterator[None]:
        """
        Hold the lock of an event for the duration of the block.

        Raises:
            LockAcquisitionError: If the lock is not acquired within the blocking timeout
        """
        blocking_timeout = consistency_config.get("lock_blocking_timeout_seconds", 10)

        if consistency_config.get("enable_distributed_locks"):
            async with get_distributed_lock(
                f"ewm:event:{event_id}",
                timeout=consistency_config.get("lock_timeout_seconds", 30),
                blocking_timeout=blocking_timeout
            ):
                yield
            return

        lock = self._checkout_local(event_id)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=blocking_timeout)
            except asyncio.TimeoutError:
                raise LockAcquisitionError(f"Failed to acquire local lock for event {event_id}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._return_local(event_id)

    async def run_locked(
        self,
        event_id: int,
        operation: Callable[[], T],
        consistency_config: Dict[str, Any],
        retry_on: Tuple[Type[Exception], ...] = ()
    ) -> T:
        """
        Run a synchronous unit of work while holding the event lock.

        Lock timeouts and any exception listed in retry_on are retried up to
        max_retry_attempts times. A lock that stays busy surfaces as ConflictError;
        exhausted retry_on exceptions propagate to the caller.
        """
        async def attempt() -> T:
            async with self.hold(event_id, consistency_config):
                return operation()

        try:
            return await retry_with_backoff(
                attempt,
                max_retries=consistency_config.get("max_retry_attempts", 3),
                initial_delay=consistency_config.get("retry_delay_ms", 100) / 1000,
                exceptions=(LockAcquisitionError,) + tuple(retry_on)
            )
        except LockAcquisitionError as e:
            logger.error(f"Giving up on event {event_id}: {e}")
            raise ConflictError(f"Event with id={event_id} is being modified concurrently, try again later")


# Global lock provider instance
event_locks = EventLockProvider()
