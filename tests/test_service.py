"""Integration tests for CourierService.

Runs the whole pipeline against qdrant-client's local in-memory mode and
a mock HTTP transport.
"""

from __future__ import annotations

import pytest
from conftest import MockEndpoint

from courier.config import Settings
from courier.exceptions import ConfigurationError, InvalidTransitionError, NotFoundError
from courier.hooks import DELIVERY_SUCCEEDED, HookRegistry
from courier.hooks import hooks as default_hooks
from courier.models import Delivery
from courier.service import CourierService
from courier.webhooks.signing import verify_signature


def make_settings(**overrides) -> Settings:
    data = {
        "env": "test",
        "qdrant_url": ":memory:",
        "collection_prefix": "svc",
        "worker_count": 2,
        "webhook_timeout_seconds": 5.0,
    }
    data.update(overrides)
    return Settings(**data)


def make_service(
    endpoint: MockEndpoint,
    hooks: HookRegistry,
    run_sweeper: bool = False,
    **settings_overrides,
) -> CourierService:
    return CourierService.create(
        make_settings(**settings_overrides),
        hooks=hooks,
        transport=endpoint.transport,
        run_sweeper=run_sweeper,
    )


class TestCreate:
    """Tests for service wiring."""

    def test_wires_components(self, hook_registry: HookRegistry):
        service = make_service(MockEndpoint(), hook_registry)

        assert service.dispatcher._queue is service.queue
        assert service.dispatcher._hooks is hook_registry
        assert service.dispatcher._timeout == 5.0
        assert service.storage._prefix == "svc"
        assert service.hooks is hook_registry

    async def test_initialize_freezes_hooks(self, hook_registry: HookRegistry):
        async with make_service(MockEndpoint(), hook_registry) as service:
            assert service.queue.running
            with pytest.raises(ConfigurationError):
                hook_registry.register(DELIVERY_SUCCEEDED, lambda d: None)
        assert not service.queue.running

    async def test_second_service_shares_frozen_hooks(self, hook_registry: HookRegistry):
        succeeded: list[Delivery] = []
        hook_registry.register(DELIVERY_SUCCEEDED, succeeded.append)
        endpoint = MockEndpoint(200)

        async with make_service(endpoint, hook_registry, collection_prefix="first"):
            pass
        async with make_service(endpoint, hook_registry, collection_prefix="second") as service:
            destination = await service.register_destination(
                tenant_id="org_1", url="https://example.com/hooks"
            )
            delivery = await service.enqueue_delivery(destination.id, "order.created", {})
            await service.queue.join()

        assert hook_registry.frozen
        assert [d.id for d in succeeded] == [delivery.id]
        with pytest.raises(ConfigurationError):
            hook_registry.register(DELIVERY_SUCCEEDED, succeeded.append)

    def test_defaults_to_process_wide_hooks(self):
        service = CourierService.create(make_settings(), run_sweeper=False)

        assert service.hooks is default_hooks
        assert service.dispatcher._hooks is default_hooks

    async def test_sweeper_lifecycle(self, hook_registry: HookRegistry):
        service = make_service(
            MockEndpoint(), hook_registry, run_sweeper=True, sweep_interval_seconds=0.05
        )
        async with service:
            assert service._sweeper_task is not None
            assert not service._sweeper_task.done()
        assert service._sweeper_task is None


class TestDelivery:
    """End-to-end delivery through the service."""

    async def test_register_destination(self, hook_registry: HookRegistry):
        async with make_service(MockEndpoint(), hook_registry, secret_length=40) as service:
            destination = await service.register_destination(
                tenant_id="org_1",
                url="https://example.com/hooks",
                events=["order.created"],
                name="ERP",
            )
            stored = await service.storage.get_destination(destination.id)

        assert len(destination.secret) == 40
        assert stored is not None
        assert stored.secret == destination.secret
        assert stored.events == ["order.created"]

    async def test_dispatch_and_deliver(self, hook_registry: HookRegistry):
        endpoint = MockEndpoint(200)
        succeeded: list[Delivery] = []
        hook_registry.register(DELIVERY_SUCCEEDED, succeeded.append)

        async with make_service(endpoint, hook_registry) as service:
            destination = await service.register_destination(
                tenant_id="org_1", url="https://example.com/hooks", events=["order.created"]
            )
            deliveries = await service.dispatch_event("org_1", "order.created", {"order_id": 7})
            await service.queue.join()
            delivered = await service.get_delivery(deliveries[0].id)
            listed = await service.list_deliveries(destination_id=destination.id)

        assert delivered is not None
        assert delivered.status == "success"
        assert delivered.attempts == 1
        assert [d.id for d in listed] == [delivered.id]
        assert [d.id for d in succeeded] == [delivered.id]
        request = endpoint.requests[0]
        assert verify_signature(
            request.content, destination.secret, request.headers["X-Webhook-Signature"]
        )

    async def test_failure_schedules_retry(self, hook_registry: HookRegistry):
        endpoint = MockEndpoint(500)

        async with make_service(endpoint, hook_registry) as service:
            destination = await service.register_destination(
                tenant_id="org_1", url="https://example.com/hooks"
            )
            delivery = await service.enqueue_delivery(destination.id, "stock.adjusted", {})
            await service.queue.join()
            stored = await service.get_delivery(delivery.id)

            assert service.queue.scheduled_count == 1
            assert service.queue.is_claimed(delivery.id)

        assert stored is not None
        assert stored.status == "pending"
        assert stored.attempts == 1
        assert stored.next_retry_at is not None
        assert endpoint.call_count == 1

    async def test_send_test_and_retry(self, hook_registry: HookRegistry):
        endpoint = MockEndpoint(200)

        async with make_service(endpoint, hook_registry) as service:
            destination = await service.register_destination(
                tenant_id="org_1", url="https://example.com/hooks", events=["product.created"]
            )
            await service.storage.set_active(destination.id, False)
            test_delivery = await service.send_test(destination.id)
            await service.queue.join()
            failed = await service.get_delivery(test_delivery.id)

            await service.storage.set_active(destination.id, True)
            retried = await service.retry_delivery(test_delivery.id)
            await service.queue.join()
            final = await service.get_delivery(test_delivery.id)

            with pytest.raises(InvalidTransitionError):
                await service.retry_delivery(test_delivery.id)

        assert test_delivery.event == "product.created"
        assert failed is not None
        assert failed.status == "failed"
        assert failed.attempts == 0
        assert retried.attempts == 0
        assert final is not None
        assert final.status == "success"
        assert final.attempts == 1
        assert endpoint.call_count == 1

    async def test_unknown_destination(self, hook_registry: HookRegistry):
        async with make_service(MockEndpoint(), hook_registry) as service:
            with pytest.raises(NotFoundError):
                await service.enqueue_delivery("dst_missing", "order.created", {})
