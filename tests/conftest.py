"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import httpx
import pytest

from courier.hooks import HookRegistry
from courier.models import Delivery, Destination
from courier.storage import CourierStorage

# Add tests directory to path so the helpers below can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

TEST_SECRET = "test_secret_for_signing_webhooks"


class MockEndpoint:
    """Scripted webhook receiver backed by httpx.MockTransport.

    Each request consumes the next scripted outcome; the last outcome
    repeats once the script runs out. An outcome is a status code, a
    (status code, body) tuple, or an httpx exception class which is raised
    for the request.

    Example:
        ```python
        endpoint = MockEndpoint(httpx.ReadTimeout, 200)
        dispatcher = WebhookDispatcher(storage, transport=endpoint.transport)
        ```
    """

    def __init__(self, *outcomes: Any) -> None:
        self.requests: list[httpx.Request] = []
        self._outcomes = list(outcomes) or [200]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, type) and issubclass(outcome, httpx.HTTPError):
            raise outcome("simulated transport failure", request=request)
        if isinstance(outcome, tuple):
            status_code, body = outcome
            return httpx.Response(status_code, text=body)
        return httpx.Response(outcome, text="OK" if outcome < 300 else "error")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_destination(**overrides: Any) -> Destination:
    """Build a destination with test defaults."""
    data: dict[str, Any] = {
        "tenant_id": "org_1",
        "url": "https://example.com/webhook",
        "secret": TEST_SECRET,
        "events": ["order.created", "order.updated"],
    }
    data.update(overrides)
    return Destination.model_validate(data)


def make_delivery(destination: Destination, **overrides: Any) -> Delivery:
    """Build a pending delivery for a destination."""
    data: dict[str, Any] = {
        "destination_id": destination.id,
        "tenant_id": destination.tenant_id,
        "event": "order.created",
        "payload": {"order_id": 42, "total": "19.99"},
    }
    data.update(overrides)
    return Delivery.model_validate(data)


@pytest.fixture
async def storage():
    """In-memory storage using qdrant-client's local mode.

    No external Qdrant server is required.
    """
    store = CourierStorage(url=":memory:", prefix="test")
    await store.initialize()

    yield store

    await store.close()


@pytest.fixture
def destination() -> Destination:
    return make_destination()


@pytest.fixture
def hook_registry() -> HookRegistry:
    """A fresh registry so tests never freeze the process-wide one."""
    return HookRegistry()
