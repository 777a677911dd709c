"""Webhook delivery pipeline for Courier.

Provides HMAC-signed webhook delivery with a fixed retry schedule,
an in-process worker queue and a sweeper that restores pending retries.

Example:
    ```python
    from courier.webhooks import (
        DeliveryWorker,
        InProcessDeliveryQueue,
        WebhookDispatcher,
    )

    dispatcher = WebhookDispatcher(storage)
    queue = InProcessDeliveryQueue(DeliveryWorker(dispatcher).run)
    dispatcher.bind_queue(queue)

    async with queue:
        await dispatcher.dispatch_event("tenant_1", "order.created", {"order_id": 42})
    ```
"""

from .delivery import WebhookDispatcher, build_envelope, dispatch_webhook_event
from .queue import DeliveryQueue, InProcessDeliveryQueue
from .signing import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    SIGNATURE_HEADER,
    serialize_payload,
    sign,
    verify_signature,
)
from .worker import DeliverySweeper, DeliveryWorker

__all__ = [
    "DELIVERY_HEADER",
    "EVENT_HEADER",
    "SIGNATURE_HEADER",
    "DeliveryQueue",
    "DeliverySweeper",
    "DeliveryWorker",
    "InProcessDeliveryQueue",
    "WebhookDispatcher",
    "build_envelope",
    "dispatch_webhook_event",
    "serialize_payload",
    "sign",
    "verify_signature",
]
