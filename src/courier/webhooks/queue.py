"""In-process job queue that runs delivery attempts.

Each delivery id has at most one job scheduled or running at any time,
which keeps a delivery's attempts strictly sequential while different
deliveries proceed concurrently across the worker pool.

The queue branches on the AttemptResult returned by the runner: a
retryable failure is scheduled again after its ``retry_after_seconds``;
anything else ends the job. Scheduled timers live only in this process.
After a restart the due-delivery sweeper re-enqueues pending deliveries
from their persisted ``next_retry_at``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from courier.exceptions import DeliveryError
from courier.models import AttemptResult

logger = logging.getLogger(__name__)

JobRunner = Callable[[str], Awaitable[AttemptResult]]


@runtime_checkable
class DeliveryQueue(Protocol):
    """Schedules delivery attempts."""

    @abstractmethod
    async def enqueue(self, delivery_id: str, delay_seconds: float = 0) -> bool:
        """Schedule an attempt for a delivery.

        Returns:
            True if a job was scheduled or moved earlier, False if an
            equivalent job was already pending.
        """
        ...


class InProcessDeliveryQueue:
    """asyncio worker pool with delayed scheduling.

    Example:
        ```python
        queue = InProcessDeliveryQueue(worker.run, workers=4)
        async with queue:
            await queue.enqueue("dlv_abc123")
            await queue.join()
        ```
    """

    def __init__(self, runner: JobRunner, workers: int = 4) -> None:
        """Initialize the queue.

        Args:
            runner: Coroutine performing one attempt for a delivery id.
            workers: Number of concurrent worker tasks.
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._runner = runner
        self._worker_count = workers
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._claimed: set[str] = set()
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending_count(self) -> int:
        """Deliveries currently scheduled, queued or running."""
        return len(self._claimed)

    @property
    def scheduled_count(self) -> int:
        """Deliveries waiting on a delay timer."""
        return len(self._timers)

    def is_claimed(self, delivery_id: str) -> bool:
        return delivery_id in self._claimed

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._work(), name=f"courier-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Delivery queue started with %d workers", self._worker_count)

    async def stop(self) -> None:
        """Cancel timers and workers. Unfinished jobs are dropped."""
        if not self._running:
            return
        self._running = False
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._claimed.clear()
        logger.info("Delivery queue stopped")

    async def join(self) -> None:
        """Wait until every queued (not delayed) job has been processed."""
        await self._queue.join()

    async def __aenter__(self) -> InProcessDeliveryQueue:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    async def enqueue(self, delivery_id: str, delay_seconds: float = 0) -> bool:
        """Schedule an attempt, keeping at most one job per delivery.

        If the delivery already waits on a timer, the earlier of the two
        due times wins. If it is queued or running, the request is ignored.

        Raises:
            DeliveryError: If the queue is not running.
        """
        if not self._running:
            raise DeliveryError("delivery queue is not running")

        loop = asyncio.get_running_loop()
        delay = max(0.0, float(delay_seconds))

        existing = self._timers.get(delivery_id)
        if existing is not None:
            if existing.when() <= loop.time() + delay:
                return False
            existing.cancel()
            del self._timers[delivery_id]
        elif delivery_id in self._claimed:
            logger.debug("Delivery %s already queued or running", delivery_id)
            return False

        self._claimed.add(delivery_id)
        if delay == 0:
            self._queue.put_nowait(delivery_id)
        else:
            self._timers[delivery_id] = loop.call_later(delay, self._release, delivery_id)
        return True

    def _release(self, delivery_id: str) -> None:
        """Move a delayed job onto the ready queue."""
        self._timers.pop(delivery_id, None)
        if self._running:
            self._queue.put_nowait(delivery_id)

    async def _work(self) -> None:
        while True:
            delivery_id = await self._queue.get()
            try:
                result = await self._run(delivery_id)
                self._claimed.discard(delivery_id)
                if result is not None and result.should_retry and self._running:
                    await self.enqueue(delivery_id, result.retry_after_seconds or 0)
            finally:
                self._queue.task_done()

    async def _run(self, delivery_id: str) -> AttemptResult | None:
        try:
            return await self._runner(delivery_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Delivery job %s failed; leaving it for the due-delivery sweeper",
                delivery_id,
            )
            return None
