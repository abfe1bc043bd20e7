"""
Deferred callbacks for the table.

Everything the table defers (the timed round steps, the debounced credits
sync) goes through a `RoundTimer`. Jobs are keyed: scheduling under a key that
is already pending replaces the pending job, which is how the round keeps a
single cancellable step in flight and how the credits sync is debounced.
"""

import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from megafire.core.logger import get_logger

logger = get_logger("scheduler")

Callback = Callable[[], None]


class RoundTimer:
    """Keyed one-shot timer contract."""

    def schedule(self, key: str, delay: float, callback: Callback):
        raise NotImplementedError

    def cancel(self, key: str):
        raise NotImplementedError

    def cancel_all(self):
        raise NotImplementedError

    def is_pending(self, key: str) -> bool:
        raise NotImplementedError

    def start(self):
        pass

    def shutdown(self):
        self.cancel_all()


class AsyncRoundTimer(RoundTimer):
    """
    APScheduler-backed timer. Jobs are coroutines, so the asyncio executor
    runs them on the event loop itself: one logical thread, no parallel
    mutation of the table.
    """

    def __init__(self, scheduler: AsyncIOScheduler = None):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Round timer started")

    def shutdown(self):
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
                logger.info("Round timer shutdown")
        except RuntimeError as e:
            # Event loop already closed during interpreter teardown
            logger.warning(f"Round timer shutdown skipped: {e}")

    def schedule(self, key: str, delay: float, callback: Callback):
        async def job():
            try:
                callback()
            except Exception:
                logger.exception(f"Timer job {key} failed")

        run_date = datetime.now(timezone.utc) + timedelta(seconds=max(0.0, delay))
        self.scheduler.add_job(
            job,
            DateTrigger(run_date=run_date),
            id=key,
            name=key,
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, key: str):
        try:
            self.scheduler.remove_job(key)
        except JobLookupError:
            pass

    def cancel_all(self):
        self.scheduler.remove_all_jobs()

    def is_pending(self, key: str) -> bool:
        return self.scheduler.get_job(key) is not None


class ManualRoundTimer(RoundTimer):
    """
    Virtual clock. Nothing fires until `advance()` or `run_all()` is called;
    jobs then fire in due-time order (ties in scheduling order), and jobs
    scheduled by a callback are picked up within the same advance.
    """

    def __init__(self):
        self.now = 0.0
        self._seq = itertools.count()
        self._heap: List[Tuple[float, int, str]] = []
        self._jobs: Dict[str, Tuple[float, int, Callback]] = {}

    def schedule(self, key: str, delay: float, callback: Callback):
        due = self.now + max(0.0, delay)
        seq = next(self._seq)
        self._jobs[key] = (due, seq, callback)
        heapq.heappush(self._heap, (due, seq, key))

    def cancel(self, key: str):
        self._jobs.pop(key, None)

    def cancel_all(self):
        self._jobs.clear()
        self._heap.clear()

    def is_pending(self, key: str) -> bool:
        return key in self._jobs

    def _drop_stale(self):
        # Heap entries whose job was cancelled or replaced
        while self._heap:
            due, seq, key = self._heap[0]
            job = self._jobs.get(key)
            if job is not None and job[1] == seq:
                return
            heapq.heappop(self._heap)

    def _fire_next(self, until: float) -> bool:
        self._drop_stale()
        if not self._heap or self._heap[0][0] > until:
            return False
        due, seq, key = heapq.heappop(self._heap)
        _, _, callback = self._jobs.pop(key)
        self.now = max(self.now, due)
        callback()
        return True

    def advance(self, seconds: float):
        target = self.now + seconds
        while self._fire_next(target):
            pass
        self.now = target

    def run_all(self, max_jobs: int = 1000):
        """Fire everything pending, jumping the clock forward as needed."""
        for _ in range(max_jobs):
            if not self._fire_next(float("inf")):
                return
        raise RuntimeError(f"Timer did not settle after {max_jobs} jobs")
