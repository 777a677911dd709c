"""Webhook delivery with HMAC signatures and a fixed retry schedule.

One call to WebhookDispatcher.attempt() performs at most one HTTP attempt
for a delivery and returns an AttemptResult. The queue that invoked it
decides what happens next: a retryable failure is re-enqueued after
``retry_after_seconds``; success and terminal failure end the sequence.

Attempt ordering:
1. Terminal deliveries are left untouched.
2. The destination's liveness is checked before anything is counted, so a
   destination deactivated before the first attempt leaves ``attempts == 0``.
3. The attempt counter is persisted before the request goes out, so a
   crash mid-request can never produce more than MAX_ATTEMPTS attempts.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import httpx

from courier.config import settings
from courier.exceptions import NotFoundError, ValidationError
from courier.hooks import DELIVERY_FAILED, DELIVERY_SUCCEEDED, HookRegistry
from courier.hooks import hooks as default_hooks
from courier.models import AttemptOutcome, AttemptResult, Delivery, utc_now
from courier.retry import MAX_ATTEMPTS, next_retry_delay

from .signing import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    SIGNATURE_HEADER,
    serialize_payload,
    sign,
)

if TYPE_CHECKING:
    from courier.models import Destination
    from courier.storage import CourierStore

    from .queue import DeliveryQueue

logger = logging.getLogger(__name__)

TEST_MESSAGE = "This is a test webhook delivery"


def build_envelope(event: str, tenant_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Wrap event data in the standard webhook envelope."""
    return {
        "id": f"wh_{secrets.token_hex(12)}",
        "event": event,
        "timestamp": utc_now().isoformat(),
        "tenant_id": tenant_id,
        "data": data,
    }


def _describe_transport_error(exc: httpx.HTTPError) -> str:
    detail = str(exc) or exc.__class__.__name__
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timeout: {detail}"
    return detail


class WebhookDispatcher:
    """Creates deliveries and performs delivery attempts.

    Example:
        ```python
        dispatcher = WebhookDispatcher(storage)
        dispatcher.bind_queue(queue)

        delivery = await dispatcher.enqueue_delivery(
            "dst_abc", "order.created", {"order_id": 42}
        )
        result = await dispatcher.attempt(delivery.id)
        ```
    """

    def __init__(
        self,
        storage: CourierStore,
        queue: DeliveryQueue | None = None,
        hooks: HookRegistry | None = None,
        timeout_seconds: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the webhook dispatcher.

        Args:
            storage: Destination registry and delivery record store.
            queue: Queue that runs attempts. Without one, new deliveries are
                only persisted and wait for the due-delivery sweeper.
            hooks: Lifecycle hook registry. Defaults to the process-wide one.
            timeout_seconds: Per-attempt HTTP timeout.
            user_agent: User-Agent header value.
            transport: Optional httpx transport (for tests and proxies).
        """
        self._storage = storage
        self._queue = queue
        self._hooks = hooks if hooks is not None else default_hooks
        self._timeout = (
            timeout_seconds if timeout_seconds is not None else settings.webhook_timeout_seconds
        )
        self._user_agent = user_agent or settings.webhook_user_agent
        self._transport = transport

    def bind_queue(self, queue: DeliveryQueue) -> None:
        """Attach the queue used to schedule attempts."""
        self._queue = queue

    # ------------------------------------------------------------------
    # Enqueuing
    # ------------------------------------------------------------------

    async def enqueue_delivery(
        self,
        destination_id: str,
        event: str,
        payload: dict[str, Any],
    ) -> Delivery:
        """Create a pending delivery and schedule its first attempt.

        The caller is expected to have checked that the destination
        subscribes to the event.

        Raises:
            NotFoundError: If the destination doesn't exist.
        """
        destination = await self._storage.get_destination(destination_id)
        if destination is None:
            raise NotFoundError("destination", destination_id)

        delivery = Delivery(
            destination_id=destination.id,
            tenant_id=destination.tenant_id,
            event=event,
            payload=payload,
        )
        await self._storage.save_delivery(delivery)
        await self._schedule(delivery.id, 0)

        logger.debug("Delivery %s enqueued: %s to %s", delivery.id, event, destination.id)
        return delivery

    async def dispatch_event(
        self,
        tenant_id: str,
        event: str,
        data: dict[str, Any],
    ) -> list[Delivery]:
        """Create one delivery per active destination subscribed to an event.

        Each destination receives its own envelope, with its own id.

        Returns:
            The created deliveries (empty if nobody subscribes).
        """
        destinations = await self._storage.get_destinations_for_event(tenant_id, event)
        if not destinations:
            logger.debug("No destinations subscribed to %s for tenant %s", event, tenant_id)
            return []

        deliveries = []
        for destination in destinations:
            payload = build_envelope(event, tenant_id, data)
            deliveries.append(await self.enqueue_delivery(destination.id, event, payload))
        return deliveries

    async def retry_delivery(self, delivery_id: str) -> Delivery:
        """Manually re-queue a failed delivery with a fresh attempt budget.

        Raises:
            NotFoundError: If the delivery doesn't exist.
            InvalidTransitionError: If the delivery is pending or succeeded.
        """
        delivery = await self._storage.get_delivery(delivery_id)
        if delivery is None:
            raise NotFoundError("delivery", delivery_id)

        delivery.reset_for_retry()
        await self._storage.save_delivery(delivery)
        await self._schedule(delivery.id, 0)

        logger.info("Delivery %s manually re-queued", delivery.id)
        return delivery

    async def send_test(self, destination_id: str) -> Delivery:
        """Send a test payload to one destination using its first event.

        Raises:
            NotFoundError: If the destination doesn't exist.
            ValidationError: If the destination subscribes to no events.
        """
        destination = await self._storage.get_destination(destination_id)
        if destination is None:
            raise NotFoundError("destination", destination_id)
        if not destination.events:
            raise ValidationError("events", "destination has no subscribed events")

        event = destination.events[0]
        payload = build_envelope(
            event,
            destination.tenant_id,
            {"test": True, "message": TEST_MESSAGE, "timestamp": utc_now().isoformat()},
        )
        return await self.enqueue_delivery(destination.id, event, payload)

    async def _schedule(self, delivery_id: str, delay_seconds: float) -> None:
        if self._queue is not None:
            await self._queue.enqueue(delivery_id, delay_seconds)

    # ------------------------------------------------------------------
    # Attempting
    # ------------------------------------------------------------------

    async def attempt(self, delivery_id: str) -> AttemptResult:
        """Perform one delivery attempt and record its outcome.

        Transport errors and non-2xx responses are recorded on the delivery
        and reported as failures; they are not raised. Storage errors
        propagate.

        Raises:
            NotFoundError: If the delivery doesn't exist.
        """
        delivery = await self._storage.get_delivery(delivery_id)
        if delivery is None:
            raise NotFoundError("delivery", delivery_id)

        if delivery.is_terminal:
            logger.debug("Delivery %s already %s; nothing to do", delivery.id, delivery.status)
            return self._result(
                delivery,
                AttemptOutcome.SUCCESS
                if delivery.status == "success"
                else AttemptOutcome.TERMINAL_FAILURE,
                f"already {delivery.status}",
            )

        if delivery.attempts_exhausted:
            return await self._fail(delivery, f"Max attempts exceeded ({MAX_ATTEMPTS})")

        destination = await self._storage.get_destination(delivery.destination_id)
        if destination is None:
            return await self._fail(delivery, "Destination not found")
        if not destination.is_active:
            return await self._fail(delivery, "Destination inactive")

        body = serialize_payload(delivery.payload)
        signature = sign(body, destination.secret)

        delivery.record_attempt()
        await self._storage.save_delivery(delivery)

        try:
            response = await self._post(destination, delivery, body, signature)
        except httpx.HTTPError as e:
            error = _describe_transport_error(e)
            delivery.record_transport_error(error)
            return await self._handle_failure(delivery, destination, error)

        delivery.record_response(response.status_code, response.text)

        if response.is_success:
            delivery.mark_success()
            await self._storage.save_delivery(delivery)
            logger.info(
                "Webhook delivered: %s to %s (status %d, attempt %d)",
                delivery.event,
                destination.url,
                response.status_code,
                delivery.attempts,
            )
            await self._hooks.emit(DELIVERY_SUCCEEDED, delivery)
            return self._result(delivery, AttemptOutcome.SUCCESS, f"HTTP {response.status_code}")

        return await self._handle_failure(delivery, destination, f"HTTP {response.status_code}")

    async def _post(
        self,
        destination: Destination,
        delivery: Delivery,
        body: bytes,
        signature: str,
    ) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
            SIGNATURE_HEADER: signature,
            EVENT_HEADER: delivery.event,
            DELIVERY_HEADER: delivery.id,
        }
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        ) as client:
            return await client.post(str(destination.url), content=body, headers=headers)

    async def _handle_failure(
        self,
        delivery: Delivery,
        destination: Destination,
        error: str,
    ) -> AttemptResult:
        """Schedule the next attempt, or finalize when attempts are exhausted."""
        delay = next_retry_delay(delivery.attempts)
        if delay is None:
            logger.warning(
                "Webhook max attempts exceeded: %s to %s after %d attempts",
                delivery.event,
                destination.url,
                delivery.attempts,
            )
            return await self._fail(delivery, f"Max attempts exceeded: {error}")

        delivery.mark_retrying(utc_now() + timedelta(seconds=delay), error)
        await self._storage.save_delivery(delivery)
        logger.warning(
            "Webhook attempt %d/%d failed: %s to %s (%s); retrying in %ds",
            delivery.attempts,
            MAX_ATTEMPTS,
            delivery.event,
            destination.url,
            error,
            delay,
        )
        return self._result(
            delivery,
            AttemptOutcome.RETRYABLE_FAILURE,
            error,
            retry_after_seconds=delay,
        )

    async def _fail(self, delivery: Delivery, error: str) -> AttemptResult:
        delivery.mark_failed(error)
        await self._storage.save_delivery(delivery)
        logger.error(
            "Webhook delivery %s permanently failed: %s (attempts %d)",
            delivery.id,
            error,
            delivery.attempts,
        )
        await self._hooks.emit(DELIVERY_FAILED, delivery)
        return self._result(delivery, AttemptOutcome.TERMINAL_FAILURE, error)

    @staticmethod
    def _result(
        delivery: Delivery,
        outcome: AttemptOutcome,
        detail: str,
        retry_after_seconds: int | None = None,
    ) -> AttemptResult:
        return AttemptResult(
            delivery_id=delivery.id,
            outcome=outcome,
            detail=detail,
            attempts=delivery.attempts,
            response_status=delivery.response_status,
            retry_after_seconds=retry_after_seconds,
        )


async def dispatch_webhook_event(
    storage: CourierStore,
    event: str,
    tenant_id: str,
    queue: DeliveryQueue | None = None,
    **data: object,
) -> list[Delivery]:
    """Convenience function to dispatch an event without holding a dispatcher.

    Args:
        storage: Destination registry and delivery store.
        event: Event name.
        tenant_id: Tenant whose destinations receive the event.
        queue: Optional queue to schedule the first attempts on.
        **data: Event data placed in the envelope.
    """
    dispatcher = WebhookDispatcher(storage, queue=queue)
    return await dispatcher.dispatch_event(tenant_id, event, dict(data))
