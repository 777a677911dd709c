"""Delivery record store operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from qdrant_client import models

from courier.models import Delivery, DeliveryStatus, utc_now

from .base import to_timestamp
from .retry import storage_operation


class DeliveryMixin:
    """Mixin providing delivery record operations for CourierStorage.

    Deliveries are keyed by their id. Operational queries filter on the
    indexed destination_id, status and timestamp fields.
    """

    _upsert: Any
    _retrieve: Any
    _scroll: Any
    _model_to_payload: Any
    _payload_to_model: Any

    async def _find_deliveries(self, conditions: list[models.Condition]) -> list[Delivery]:
        payloads = await self._scroll("deliveries", conditions)
        return [self._payload_to_model(p, Delivery) for p in payloads]

    @storage_operation
    async def save_delivery(self, delivery: Delivery) -> str:
        """Insert or replace a delivery record.

        Returns:
            The delivery ID.
        """
        await self._upsert("deliveries", delivery.id, self._model_to_payload(delivery))
        return delivery.id

    @storage_operation
    async def get_delivery(self, delivery_id: str) -> Delivery | None:
        """Get a delivery by ID, or None if it doesn't exist."""
        payload = await self._retrieve("deliveries", delivery_id)
        if payload is None:
            return None
        delivery: Delivery = self._payload_to_model(payload, Delivery)
        return delivery

    @storage_operation
    async def list_deliveries(
        self,
        destination_id: str | None = None,
        status: DeliveryStatus | None = None,
        tenant_id: str | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        """List deliveries, newest first.

        Args:
            destination_id: Only deliveries for this destination.
            status: Only deliveries in this status.
            tenant_id: Only deliveries of this tenant.
            limit: Maximum records to return.
        """
        conditions: list[models.Condition] = []
        for key, value in (
            ("destination_id", destination_id),
            ("status", status),
            ("tenant_id", tenant_id),
        ):
            if value is not None:
                conditions.append(
                    models.FieldCondition(key=key, match=models.MatchValue(value=value))
                )

        deliveries = await self._find_deliveries(conditions)
        deliveries.sort(key=lambda d: d.created_at, reverse=True)
        return deliveries[:limit]

    @storage_operation
    async def get_due_deliveries(
        self,
        now: datetime | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        """Pending deliveries whose next attempt is due.

        A pending delivery with no next_retry_at has never been scheduled
        and counts as due. Ordered by due time, earliest first.
        """
        conditions: list[models.Condition] = [
            models.FieldCondition(key="status", match=models.MatchValue(value="pending")),
            models.FieldCondition(
                key="next_retry_ts",
                range=models.Range(lte=to_timestamp(now or utc_now())),
            ),
        ]
        deliveries = await self._find_deliveries(conditions)
        deliveries.sort(key=lambda d: (to_timestamp(d.next_retry_at), d.created_at))
        return deliveries[:limit]

    @storage_operation
    async def get_pending_deliveries(
        self,
        older_than: datetime | None = None,
        limit: int = 100,
    ) -> list[Delivery]:
        """Pending deliveries, optionally only those created before a cutoff.

        Used for operational reporting ("pending deliveries older than X").
        Ordered oldest first.
        """
        conditions: list[models.Condition] = [
            models.FieldCondition(key="status", match=models.MatchValue(value="pending")),
        ]
        if older_than is not None:
            conditions.append(
                models.FieldCondition(
                    key="created_ts",
                    range=models.Range(lt=to_timestamp(older_than)),
                )
            )
        deliveries = await self._find_deliveries(conditions)
        deliveries.sort(key=lambda d: d.created_at)
        return deliveries[:limit]
