"""Destination registry operations.

The delivery core only reads destinations (get_destination, is_active);
the write operations here serve the enqueuing side and administrative
tooling.
"""

from __future__ import annotations

from typing import Any

from qdrant_client import models

from courier.config import settings
from courier.exceptions import NotFoundError
from courier.models import Destination, generate_secret, utc_now

from .retry import storage_operation


class DestinationMixin:
    """Mixin providing destination registry operations for CourierStorage.

    This mixin expects the following from the base class:
    - _upsert(kind, record_id, payload)
    - _retrieve(kind, record_id) -> payload | None
    - _scroll(kind, conditions) -> list[payload]
    - _model_to_payload(model) / _payload_to_model(payload, cls)
    """

    _upsert: Any
    _retrieve: Any
    _scroll: Any
    _model_to_payload: Any
    _payload_to_model: Any

    @storage_operation
    async def store_destination(self, destination: Destination) -> str:
        """Insert or replace a destination.

        Returns:
            The destination ID.
        """
        await self._upsert("destinations", destination.id, self._model_to_payload(destination))
        return destination.id

    @storage_operation
    async def get_destination(self, destination_id: str) -> Destination | None:
        """Get a destination by ID, or None if it doesn't exist."""
        payload = await self._retrieve("destinations", destination_id)
        if payload is None:
            return None
        destination: Destination = self._payload_to_model(payload, Destination)
        return destination

    async def is_active(self, destination_id: str) -> bool:
        """False if the destination is missing or deactivated."""
        destination = await self.get_destination(destination_id)
        return destination is not None and destination.is_active

    async def _find_destinations(
        self, conditions: list[models.Condition]
    ) -> list[Destination]:
        payloads = await self._scroll("destinations", conditions)
        destinations: list[Destination] = [
            self._payload_to_model(p, Destination) for p in payloads
        ]
        destinations.sort(key=lambda d: d.created_at)
        return destinations

    @storage_operation
    async def list_destinations(
        self,
        tenant_id: str,
        active_only: bool = False,
        limit: int | None = 100,
    ) -> list[Destination]:
        """List a tenant's destinations, oldest first.

        Args:
            tenant_id: Owning tenant.
            active_only: Skip deactivated destinations.
            limit: Maximum records to return, or None for all of them.
        """
        conditions: list[models.Condition] = [
            models.FieldCondition(key="tenant_id", match=models.MatchValue(value=tenant_id))
        ]
        if active_only:
            conditions.append(
                models.FieldCondition(key="is_active", match=models.MatchValue(value=True))
            )

        destinations = await self._find_destinations(conditions)
        return destinations if limit is None else destinations[:limit]

    @storage_operation
    async def get_destinations_for_event(
        self,
        tenant_id: str,
        event: str,
    ) -> list[Destination]:
        """Every active destination of a tenant subscribed to an event, oldest first."""
        return await self._find_destinations(
            [
                models.FieldCondition(key="tenant_id", match=models.MatchValue(value=tenant_id)),
                models.FieldCondition(key="is_active", match=models.MatchValue(value=True)),
                models.FieldCondition(key="events", match=models.MatchAny(any=[event])),
            ]
        )

    async def _require_destination(self, destination_id: str) -> Destination:
        destination = await self.get_destination(destination_id)
        if destination is None:
            raise NotFoundError("destination", destination_id)
        return destination

    async def set_active(self, destination_id: str, is_active: bool) -> Destination:
        """Activate or deactivate a destination.

        Raises:
            NotFoundError: If the destination doesn't exist.
        """
        destination = await self._require_destination(destination_id)
        destination.is_active = is_active
        destination.updated_at = utc_now()
        await self.store_destination(destination)
        return destination

    async def rotate_secret(
        self, destination_id: str, length: int | None = None
    ) -> Destination:
        """Replace a destination's signing secret with a new random one.

        The returned model carries the new secret; this is the only time it
        is handed out. The length defaults to settings.secret_length.

        Raises:
            NotFoundError: If the destination doesn't exist.
        """
        destination = await self._require_destination(destination_id)
        destination.secret = generate_secret(length or settings.secret_length)
        destination.updated_at = utc_now()
        await self.store_destination(destination)
        return destination
