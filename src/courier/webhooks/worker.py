"""Delivery job runner and due-delivery sweeper."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from courier.logging import log_context
from courier.models import AttemptResult, utc_now

if TYPE_CHECKING:
    from courier.storage import DeliveryStore

    from .delivery import WebhookDispatcher
    from .queue import DeliveryQueue

logger = logging.getLogger(__name__)


class DeliveryWorker:
    """Runs one attempt per job with the delivery id bound to the log context."""

    def __init__(self, dispatcher: WebhookDispatcher) -> None:
        self._dispatcher = dispatcher

    async def run(self, delivery_id: str) -> AttemptResult:
        with log_context(delivery_id=delivery_id):
            result = await self._dispatcher.attempt(delivery_id)
            logger.debug(
                "Attempt finished: %s (attempts=%d, status=%s)",
                result.outcome.value,
                result.attempts,
                result.response_status,
            )
            return result


class DeliverySweeper:
    """Re-enqueues pending deliveries whose next attempt is due.

    Timers in the in-process queue do not survive a restart; the persisted
    ``next_retry_at`` does. Sweeping periodically restores the schedule and
    also picks up deliveries created while no queue was running.

    Example:
        ```python
        sweeper = DeliverySweeper(storage, queue)
        await sweeper.sweep_due()
        task = asyncio.create_task(sweeper.run(interval_seconds=60))
        ```
    """

    def __init__(
        self,
        storage: DeliveryStore,
        queue: DeliveryQueue,
        batch_size: int = 100,
    ) -> None:
        self._storage = storage
        self._queue = queue
        self._batch_size = batch_size

    async def sweep_due(self, limit: int | None = None) -> int:
        """Enqueue every due pending delivery.

        Args:
            limit: Maximum deliveries to look at. Defaults to the batch size.

        Returns:
            Number of deliveries newly scheduled.
        """
        due = await self._storage.get_due_deliveries(
            now=utc_now(),
            limit=limit or self._batch_size,
        )
        scheduled = 0
        for delivery in due:
            if await self._queue.enqueue(delivery.id, 0):
                scheduled += 1
        if scheduled:
            logger.info("Sweeper re-enqueued %d due deliveries", scheduled)
        return scheduled

    async def run(self, interval_seconds: float) -> None:
        """Sweep forever until cancelled. Sweep errors are logged and retried."""
        while True:
            try:
                await self.sweep_due()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Due-delivery sweep failed")
            await asyncio.sleep(interval_seconds)
