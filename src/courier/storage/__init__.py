"""Storage backends for Courier.

Persists destinations and delivery records to Qdrant. Use the URL
":memory:" for qdrant-client's embedded local mode.

Example:
    ```python
    from courier.storage import CourierStorage

    async with CourierStorage(url=":memory:") as storage:
        await storage.store_destination(destination)
    ```
"""

from .base import COLLECTION_NAMES
from .client import CourierStorage
from .protocols import CourierStore, DeliveryStore, DestinationRegistry

__all__ = [
    "COLLECTION_NAMES",
    "CourierStorage",
    "CourierStore",
    "DeliveryStore",
    "DestinationRegistry",
]
