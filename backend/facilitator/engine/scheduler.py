"""Stage scheduler — per-session deadline timers and short delayed steps.

Each session has at most one armed deadline. Delayed steps (the pause after
the introduction, after full coverage, after a hint, between stages) are
tracked per session too, so conclusion or a manual advance can drop them.

Timers only wake a callback; they carry no guarantee about channel state.
Callbacks must re-check that their session is still registered and still at
the stage they were scheduled for.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


class DeadlineAlreadyArmed(Exception):
    """Raised when arming a deadline for a session that already has one."""


class StageScheduler:
    def __init__(self, sleep: Optional[Sleep] = None):
        self._sleep: Sleep = sleep or asyncio.sleep
        self._deadlines: dict[str, asyncio.Task] = {}
        self._deferred: dict[str, set[asyncio.Task]] = {}

    # ── Deadlines ────────────────────────────────────────────────────────────

    def arm(self, key: str, horizon: float, on_fire: Callback) -> asyncio.Task:
        if self.is_armed(key):
            raise DeadlineAlreadyArmed(f"Deadline already armed for {key}")
        task = asyncio.create_task(self._fire_deadline(key, horizon, on_fire))
        self._deadlines[key] = task
        logger.debug("Deadline armed for %s (%.0fs)", key, horizon)
        return task

    def cancel(self, key: str) -> bool:
        task = self._deadlines.pop(key, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug("Deadline cancelled for %s", key)
        return True

    def is_armed(self, key: str) -> bool:
        task = self._deadlines.get(key)
        return task is not None and not task.done()

    async def _fire_deadline(self, key: str, horizon: float, on_fire: Callback) -> None:
        await self._sleep(horizon)
        # One-shot: disarm before running so the handler may arm the next stage.
        if self._deadlines.get(key) is asyncio.current_task():
            del self._deadlines[key]
        await self._run(key, on_fire, "deadline")

    # ── Delayed steps ────────────────────────────────────────────────────────

    def defer(self, key: str, delay: float, callback: Callback) -> asyncio.Task:
        task = asyncio.create_task(self._fire_deferred(delay, key, callback))
        pending = self._deferred.setdefault(key, set())
        pending.add(task)
        task.add_done_callback(lambda t: self._forget(key, t))
        return task

    async def _fire_deferred(self, delay: float, key: str, callback: Callback) -> None:
        await self._sleep(delay)
        await self._run(key, callback, "delayed step")

    def _forget(self, key: str, task: asyncio.Task) -> None:
        pending = self._deferred.get(key)
        if pending is None:
            return
        pending.discard(task)
        if not pending:
            del self._deferred[key]

    def pending(self, key: str) -> int:
        return len(self._deferred.get(key, ()))

    def cancel_all(self, key: str) -> None:
        """Drop the deadline and every delayed step for ``key``.

        The task calling this (if it is one of ours) is left running.
        """
        self.cancel(key)
        current = asyncio.current_task()
        for task in list(self._deferred.get(key, ())):
            if task is not current:
                task.cancel()

    async def shutdown(self) -> None:
        tasks = list(self._deadlines.values())
        for pending in self._deferred.values():
            tasks.extend(pending)
        self._deadlines.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    async def _run(key: str, callback: Callback, what: str) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled %s for %s failed", what, key)
