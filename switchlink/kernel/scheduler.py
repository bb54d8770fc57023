"""
SwitchLink Resync Scheduler

Delayed, cancellable actions keyed by switch name: the stale re-assertion
bounce and the startup restore. At most one action is pending per switch;
scheduling another, or an explicit cancel from a real transition, replaces
the pending one before it fires.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Union
import asyncio
import logging

logger = logging.getLogger(__name__)


ResyncAction = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class PendingResync:
    """A scheduled action waiting for its delay to elapse."""
    name: str
    reason: str
    delay_ms: int
    task: asyncio.Task
    scheduled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ResyncScheduler:
    """Keyed fire-once timers on the running event loop."""

    def __init__(self):
        self._pending: Dict[str, PendingResync] = {}
        self._fired_count = 0
        self._cancelled_count = 0

    def schedule(self, name: str, delay_ms: int, action: ResyncAction, reason: str = "") -> PendingResync:
        """
        Run action after delay_ms, replacing any pending action for name.

        Must be called from inside a running event loop.
        """
        self.cancel(name)
        task = asyncio.get_running_loop().create_task(
            self._run(name, delay_ms, action, reason),
            name=f"resync:{name}",
        )
        pending = PendingResync(name=name, reason=reason, delay_ms=delay_ms, task=task)
        self._pending[name] = pending
        logger.debug(f"[{name}]: Scheduled {reason or 'resync'} in {delay_ms}ms")
        return pending

    def cancel(self, name: str) -> bool:
        """Cancel the pending action for name. True if one was pending."""
        pending = self._pending.pop(name, None)
        if pending is None or pending.task.done():
            return False
        pending.task.cancel()
        self._cancelled_count += 1
        logger.debug(f"[{name}]: Cancelled pending {pending.reason or 'resync'}")
        return True

    def is_pending(self, name: str) -> bool:
        pending = self._pending.get(name)
        return pending is not None and not pending.task.done()

    def get_pending(self, name: str) -> Optional[PendingResync]:
        return self._pending.get(name)

    async def _run(self, name: str, delay_ms: int, action: ResyncAction, reason: str) -> None:
        try:
            await asyncio.sleep(delay_ms / 1000.0)
        except asyncio.CancelledError:
            return

        current = self._pending.get(name)
        if current is not None and current.task is asyncio.current_task():
            del self._pending[name]

        try:
            outcome = action()
            if asyncio.iscoroutine(outcome):
                await outcome
            self._fired_count += 1
        except Exception as e:
            logger.error(f"[{name}]: {reason or 'resync'} failed: {e}")

    async def drain(self) -> None:
        """Wait for every pending action to fire or be cancelled."""
        while self._pending:
            tasks = [p.task for p in self._pending.values()]
            await asyncio.gather(*tasks, return_exceptions=True)
            for key in [k for k, p in self._pending.items() if p.task.done()]:
                del self._pending[key]

    async def shutdown(self) -> None:
        """Cancel everything still pending."""
        names = list(self._pending.keys())
        tasks = [self._pending[n].task for n in names]
        for n in names:
            self.cancel(n)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return sum(1 for p in self._pending.values() if not p.task.done())

    @property
    def fired_count(self) -> int:
        return self._fired_count

    @property
    def cancelled_count(self) -> int:
        return self._cancelled_count
