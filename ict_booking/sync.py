# sync.py
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ict_booking.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass
class SyncJob:
    operation: str
    booking_id: Optional[str]
    run: Callable[[], Awaitable[None]]


class SyncQueue:
    """
    Runs persistence calls in the background, in the order they were queued.

    The store has already been changed when a job is queued. A failed job is
    logged and remembered, and the local change stays in place: local and
    remote state may diverge until the next full refresh.
    """

    def __init__(
        self,
        on_failure: Optional[Callable[[SyncError], Awaitable[None]]] = None,
        history: int = 50,
    ):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.on_failure = on_failure
        self.recent_failures = deque(maxlen=history)

    def dispatch(self, operation: str, booking_id: Optional[str], run: Callable[[], Awaitable[None]]):
        self._queue.put_nowait(SyncJob(operation, booking_id, run))
        logger.debug("Queued %s for booking %s", operation, booking_id)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def record_failure(self, error: SyncError):
        self.recent_failures.append(error)

    def failures(self) -> List[dict]:
        return [error.as_dict() for error in self.recent_failures]

    def start(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._work())

    async def stop(self):
        """Lets the worker finish every queued job, then stops it."""
        if self._worker is not None:
            if not self._worker.done():
                await self._queue.join()
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self.drain()

    async def drain(self):
        """Runs every queued job now, without the worker."""
        while not self._queue.empty():
            job = self._queue.get_nowait()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _work(self):
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: SyncJob):
        try:
            await job.run()
        except Exception as exc:
            error = exc if isinstance(exc, SyncError) else SyncError(job.operation, str(exc), job.booking_id)
            if error.booking_id is None:
                error.booking_id = job.booking_id
            logger.warning("Sync %s failed for booking %s: %s", job.operation, job.booking_id, error)
            self.record_failure(error)
            if self.on_failure is not None:
                try:
                    await self.on_failure(error)
                except Exception:
                    logger.exception("Sync failure callback raised")
        else:
            logger.info("Synced %s for booking %s", job.operation, job.booking_id)
