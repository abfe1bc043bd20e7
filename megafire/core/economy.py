"""
Player credits.

The balance is a single integer owned by the table session and changed only
through signed deltas. Every change schedules a debounced push to the
profile store; a burst of deltas produces a single write of the final value.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Set

from megafire.core.logger import get_logger
from megafire.core.scheduler import RoundTimer

logger = get_logger("economy")

CreditsSync = Callable[[int], Awaitable[None]]

BALANCE_SYNC_JOB = "balance-sync"

# Writes still in flight on the running loop; the loop only keeps weak references
_pending: Set[asyncio.Task] = set()


def dispatch_background(coro_factory: Callable[[], Awaitable[None]], what: str):
    """
    Fire-and-forget an outbound write. Failures are logged and dropped: the
    in-memory state stays authoritative.
    """

    async def guarded():
        try:
            await coro_factory()
        except Exception as e:
            logger.warning(f"{what} failed: {e}")

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No loop (manual timer, CLI simulation): run it inline
        asyncio.run(guarded())
        return None
    task = loop.create_task(guarded())
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain_background():
    """Wait for every outbound write dispatched on this loop to finish."""
    loop = asyncio.get_running_loop()
    while True:
        tasks = [t for t in _pending if t.get_loop() is loop and not t.done()]
        if not tasks:
            return
        await asyncio.gather(*tasks, return_exceptions=True)


class BalanceStore:
    def __init__(
        self,
        credits: int,
        timer: Optional[RoundTimer] = None,
        sync: Optional[CreditsSync] = None,
        sync_delay: float = 2.0,
    ):
        self._credits = int(credits)
        self._timer = timer
        self._sync = sync
        self._sync_delay = sync_delay

    def get_balance(self) -> int:
        return self._credits

    def has_sufficient_funds(self, amount: int) -> bool:
        return self._credits >= amount

    def apply_delta(self, delta: int) -> int:
        """Apply a signed change; callers have already ruled out going negative."""
        self._credits += int(delta)
        logger.debug(f"Balance {delta:+d} -> {self._credits}")
        self._schedule_sync()
        return self._credits

    def _schedule_sync(self):
        if self._sync is None or self._timer is None:
            return
        self._timer.schedule(BALANCE_SYNC_JOB, self._sync_delay, self.flush)

    def flush(self):
        """Push the current balance now (also what the debounce timer calls)."""
        if self._sync is None:
            return
        credits = self._credits
        return dispatch_background(lambda: self._sync(credits), f"Credits sync ({credits})")
