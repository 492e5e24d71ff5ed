"""Debounced, single-flight preference recompute per user."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

RecomputeFn = Callable[[int], Awaitable[Any]]


class RecomputeScheduler:
    """Schedules preference recomputes after a quiet period.

    ``schedule`` cancels a recompute that is still waiting out its debounce
    delay and starts a new delay. Once the delay has elapsed the recompute
    is no longer cancellable and runs under a per-user lock, so at most one
    recompute per user is in flight. Different users never block each other.
    """

    def __init__(self, recompute: RecomputeFn, debounce_seconds: float = 30.0) -> None:
        self._recompute = recompute
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[int, asyncio.Task] = {}
        self._running_tasks: Set[asyncio.Task] = set()
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Allow scheduling."""
        self._started = True

    async def stop(self, flush: bool = False) -> None:
        """
        Stop scheduling and wait for in-flight work.

        Args:
            flush: Run pending recomputes now instead of cancelling them
        """
        self._started = False
        pending = list(self._pending.items())
        self._pending.clear()
        for _, task in pending:
            task.cancel()
        if flush:
            for user_id, _ in pending:
                await self._run(user_id)
        if self._running_tasks:
            await asyncio.gather(*self._running_tasks, return_exceptions=True)

    def is_pending(self, user_id: int) -> bool:
        """Whether a recompute is waiting out its debounce delay."""
        return user_id in self._pending

    def schedule(self, user_id: int, delay: Optional[float] = None) -> bool:
        """
        Schedule a recompute, replacing one that is still pending.

        Returns:
            False when the scheduler is not started
        """
        if not self._started:
            logger.warning(f"Scheduler not started, dropping recompute for user {user_id}")
            return False

        previous = self._pending.pop(user_id, None)
        if previous is not None:
            previous.cancel()

        delay = self.debounce_seconds if delay is None else delay
        task = asyncio.create_task(self._delayed(user_id, delay))
        self._pending[user_id] = task
        self._running_tasks.add(task)
        task.add_done_callback(self._running_tasks.discard)
        return True

    async def run_now(self, user_id: int) -> Any:
        """Cancel any pending delay and recompute immediately."""
        previous = self._pending.pop(user_id, None)
        if previous is not None:
            previous.cancel()
        return await self._run(user_id)

    async def flush(self) -> None:
        """Run every pending recompute now."""
        for user_id in list(self._pending):
            await self.run_now(user_id)

    async def _delayed(self, user_id: int, delay: float) -> None:
        await asyncio.sleep(delay)

        # Past the debounce window this run can no longer be replaced
        if self._pending.get(user_id) is asyncio.current_task():
            del self._pending[user_id]
        try:
            await self._run(user_id)
        except Exception:
            logger.exception(f"Scheduled recompute failed for user {user_id}")

    def _acquire_lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        return lock

    def _release_lock(self, user_id: int) -> None:
        remaining = self._lock_users[user_id] - 1
        if remaining:
            self._lock_users[user_id] = remaining
        else:
            del self._lock_users[user_id]
            del self._locks[user_id]

    async def _run(self, user_id: int) -> Any:
        lock = self._acquire_lock(user_id)
        try:
            async with lock:
                logger.debug(f"Recomputing preferences for user {user_id}")
                return await self._recompute(user_id)
        finally:
            self._release_lock(user_id)
