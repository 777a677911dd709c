"""Qdrant storage client for Courier.

Example:
    ```python
    from courier.storage import CourierStorage

    async with CourierStorage() as storage:
        await storage.store_destination(destination)
        delivery = await storage.get_delivery("dlv_abc123")
    ```
"""

from __future__ import annotations

from .base import StorageBase
from .deliveries import DeliveryMixin
from .destinations import DestinationMixin


class CourierStorage(DestinationMixin, DeliveryMixin, StorageBase):
    """Async Qdrant storage for destinations and delivery records.

    Combines:
    - DestinationMixin: the destination registry (get_destination,
      is_active, list/store, rotate_secret, set_active)
    - DeliveryMixin: the delivery record store (save_delivery,
      get_delivery, list_deliveries, get_due_deliveries,
      get_pending_deliveries)

    Satisfies both the DestinationRegistry and DeliveryStore protocols.
    """

    async def __aenter__(self) -> CourierStorage:
        await self.initialize()
        return self
