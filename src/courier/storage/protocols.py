"""Storage contracts consumed by the delivery pipeline.

The dispatcher depends on these protocols rather than on Qdrant, so the
registry and the record store can be backed by anything that provides
the same coroutines.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import Protocol, runtime_checkable

from courier.models import Delivery, DeliveryStatus, Destination


@runtime_checkable
class DestinationRegistry(Protocol):
    """Read contract for destination liveness and subscription data."""

    @abstractmethod
    async def get_destination(self, destination_id: str) -> Destination | None:
        """Get a destination, or None if it doesn't exist."""
        ...

    @abstractmethod
    async def is_active(self, destination_id: str) -> bool:
        """False if the destination is missing or deactivated."""
        ...

    @abstractmethod
    async def get_destinations_for_event(self, tenant_id: str, event: str) -> list[Destination]:
        """Active destinations of a tenant subscribed to an event."""
        ...


@runtime_checkable
class DeliveryStore(Protocol):
    """Persistence contract for delivery records."""

    @abstractmethod
    async def save_delivery(self, delivery: Delivery) -> str:
        """Insert or replace a delivery record."""
        ...

    @abstractmethod
    async def get_delivery(self, delivery_id: str) -> Delivery | None:
        """Get a delivery, or None if it doesn't exist."""
        ...

    @abstractmethod
    async def list_deliveries(
        self,
        destination_id: str | None = None,
        status: DeliveryStatus | None = None,
        tenant_id: str | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        """List deliveries, newest first."""
        ...

    @abstractmethod
    async def get_due_deliveries(
        self,
        now: datetime | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        """Pending deliveries whose next attempt is due."""
        ...


@runtime_checkable
class CourierStore(DestinationRegistry, DeliveryStore, Protocol):
    """Registry and record store provided by one backend."""
