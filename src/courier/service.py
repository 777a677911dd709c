"""High-level Courier service wiring storage, dispatcher, queue and sweeper."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from courier.config import Settings
from courier.hooks import HookRegistry
from courier.hooks import hooks as default_hooks
from courier.models import (
    Delivery,
    DeliveryStatus,
    Destination,
    generate_secret,
)
from courier.storage import CourierStorage
from courier.webhooks import (
    DeliverySweeper,
    DeliveryWorker,
    InProcessDeliveryQueue,
    WebhookDispatcher,
)

logger = logging.getLogger(__name__)


@dataclass
class CourierService:
    """Webhook delivery service.

    Provides:
    - register_destination(): add a tenant endpoint
    - enqueue_delivery() / dispatch_event(): create deliveries
    - retry_delivery() / send_test(): administrative actions
    - list_deliveries(): operational view of delivery records

    Starting the service freezes the hook registry, starts the worker pool
    and, unless disabled, the due-delivery sweeper.

    Example:
        ```python
        async with CourierService.create() as courier:
            dst = await courier.register_destination(
                tenant_id="org_1", url="https://example.com/hooks"
            )
            await courier.dispatch_event("org_1", "order.created", {"order_id": 7})
        ```

    Attributes:
        storage: Qdrant-backed registry and delivery store.
        dispatcher: Performs attempts and creates deliveries.
        queue: In-process worker pool running attempts.
        sweeper: Re-enqueues due deliveries.
        settings: Configuration settings.
        hooks: Lifecycle hook registry.
    """

    storage: CourierStorage
    dispatcher: WebhookDispatcher
    queue: InProcessDeliveryQueue
    sweeper: DeliverySweeper
    settings: Settings
    hooks: HookRegistry = field(default_factory=lambda: default_hooks)
    run_sweeper: bool = True

    _sweeper_task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        hooks: HookRegistry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        run_sweeper: bool = True,
    ) -> CourierService:
        """Create a CourierService with default dependencies.

        Args:
            settings: Optional settings. Uses environment defaults if None.
            hooks: Optional hook registry. Uses the process-wide
                ``courier.hooks.hooks`` if None. initialize() freezes the
                registry for the rest of the process: register handlers
                before starting the first service. Further services may
                share a frozen registry; pass a fresh HookRegistry() for
                one with its own handlers.
            transport: Optional httpx transport for outgoing requests.
            run_sweeper: Whether to run the periodic due-delivery sweeper.
        """
        if settings is None:
            settings = Settings()
        if hooks is None:
            hooks = default_hooks

        storage = CourierStorage(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            prefix=settings.collection_prefix,
        )
        dispatcher = WebhookDispatcher(
            storage,
            hooks=hooks,
            timeout_seconds=settings.webhook_timeout_seconds,
            user_agent=settings.webhook_user_agent,
            transport=transport,
        )
        queue = InProcessDeliveryQueue(
            DeliveryWorker(dispatcher).run,
            workers=settings.worker_count,
        )
        dispatcher.bind_queue(queue)

        return cls(
            storage=storage,
            dispatcher=dispatcher,
            queue=queue,
            sweeper=DeliverySweeper(storage, queue, batch_size=settings.sweep_batch_size),
            settings=settings,
            hooks=hooks,
            run_sweeper=run_sweeper,
        )

    async def initialize(self) -> None:
        """Open storage, freeze hooks and start workers (and the sweeper)."""
        await self.storage.initialize()
        self.hooks.freeze()
        await self.queue.start()
        if self.run_sweeper:
            self._sweeper_task = asyncio.create_task(
                self.sweeper.run(self.settings.sweep_interval_seconds),
                name="courier-sweeper",
            )

    async def close(self) -> None:
        """Stop the sweeper and workers, then close storage."""
        if self._sweeper_task is not None:
            self._sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper_task
            self._sweeper_task = None
        await self.queue.stop()
        await self.storage.close()

    async def __aenter__(self) -> CourierService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def run_forever(self) -> None:
        """Block until cancelled while workers and sweeper run."""
        await asyncio.Event().wait()

    async def register_destination(
        self,
        tenant_id: str,
        url: str,
        events: list[str] | None = None,
        name: str | None = None,
    ) -> Destination:
        """Register a destination with a freshly generated secret.

        The returned model is the only place the secret is handed out.
        """
        data: dict[str, Any] = {
            "tenant_id": tenant_id,
            "url": url,
            "name": name,
            "secret": generate_secret(self.settings.secret_length),
        }
        if events is not None:
            data["events"] = events
        destination = Destination.model_validate(data)
        await self.storage.store_destination(destination)
        logger.info("Destination %s registered for tenant %s", destination.id, tenant_id)
        return destination

    async def enqueue_delivery(
        self, destination_id: str, event: str, payload: dict[str, Any]
    ) -> Delivery:
        return await self.dispatcher.enqueue_delivery(destination_id, event, payload)

    async def dispatch_event(
        self, tenant_id: str, event: str, data: dict[str, Any]
    ) -> list[Delivery]:
        return await self.dispatcher.dispatch_event(tenant_id, event, data)

    async def retry_delivery(self, delivery_id: str) -> Delivery:
        return await self.dispatcher.retry_delivery(delivery_id)

    async def send_test(self, destination_id: str) -> Delivery:
        return await self.dispatcher.send_test(destination_id)

    async def get_delivery(self, delivery_id: str) -> Delivery | None:
        return await self.storage.get_delivery(delivery_id)

    async def list_deliveries(
        self,
        destination_id: str | None = None,
        status: DeliveryStatus | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        return await self.storage.list_deliveries(
            destination_id=destination_id, status=status, limit=limit
        )
