"""Base storage class and helpers.

Contains client lifecycle, collection management and the conversions
between Courier models and Qdrant points.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from qdrant_client import AsyncQdrantClient, models

from courier.config import MEMORY_LOCATION, settings
from courier.models import Delivery, Destination

ModelT = TypeVar("ModelT", Destination, Delivery)

COLLECTION_NAMES = {
    "destinations": "destinations",
    "deliveries": "deliveries",
}

# Keyword payload indexes per collection
KEYWORD_INDEXES = {
    "destinations": ("tenant_id", "events"),
    "deliveries": ("tenant_id", "destination_id", "status", "event"),
}

# Float payload indexes per collection (timestamps stored as epoch seconds)
FLOAT_INDEXES = {
    "destinations": (),
    "deliveries": ("next_retry_ts", "created_ts"),
}

# Records are looked up by id and filtered by payload only; every point
# carries the same one-dimensional placeholder vector.
PLACEHOLDER_VECTOR = [1.0]

# Points fetched per scroll request
SCROLL_PAGE_SIZE = 256

# Derived fields added to stored payloads for range filtering
_DERIVED_FIELDS = ("next_retry_ts", "created_ts")


def to_timestamp(value: datetime | None) -> float:
    """Epoch seconds for range filters; None sorts as due immediately."""
    return value.timestamp() if value is not None else 0.0


class StorageBase:
    """Base class for Courier storage with initialization and helpers."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize storage client.

        Args:
            url: Qdrant server URL, or ":memory:" for local mode.
                Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            prefix: Collection name prefix. Defaults to settings.collection_prefix.
        """
        self._url = url or settings.qdrant_url
        self._api_key = api_key or settings.qdrant_api_key
        self._prefix = prefix or settings.collection_prefix
        self._client: AsyncQdrantClient | None = None
        self._collections_initialized = False

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the Qdrant client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._client

    async def initialize(self) -> None:
        """Connect to Qdrant and ensure collections exist."""
        if self._client is None:
            if self._url == MEMORY_LOCATION:
                self._client = AsyncQdrantClient(location=MEMORY_LOCATION)
            else:
                self._client = AsyncQdrantClient(url=self._url, api_key=self._api_key)
        await self._ensure_collections()
        self._collections_initialized = True

    async def close(self) -> None:
        """Close the storage client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collections_initialized = False

    async def __aenter__(self) -> StorageBase:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _collection_name(self, kind: str) -> str:
        """Get full collection name with prefix."""
        suffix = COLLECTION_NAMES.get(kind, kind)
        return f"{self._prefix}_{suffix}"

    @staticmethod
    def _key_to_point_id(key: str) -> str:
        """Convert a record id to a valid Qdrant point ID.

        Qdrant requires point IDs to be UUIDs or unsigned integers.
        We hash the key to create a deterministic UUID-format string.
        """
        h = hashlib.sha256(key.encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    async def _ensure_collections(self) -> None:
        """Ensure all required collections exist with their indexes."""
        collections = await self.client.get_collections()
        existing = {c.name for c in collections.collections}

        for kind in COLLECTION_NAMES:
            collection_name = self._collection_name(kind)
            if collection_name in existing:
                continue
            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=len(PLACEHOLDER_VECTOR),
                    distance=models.Distance.DOT,
                ),
            )
            await self._create_indexes(kind, collection_name)

    async def _create_indexes(self, kind: str, collection_name: str) -> None:
        """Create payload indexes for the operational queries."""
        if self._url == MEMORY_LOCATION:
            # Local mode filters by scanning; indexes have no effect there.
            return
        for field_name in KEYWORD_INDEXES[kind]:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        for field_name in FLOAT_INDEXES[kind]:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.FLOAT,
            )

    async def _upsert(self, kind: str, record_id: str, payload: dict[str, Any]) -> None:
        await self.client.upsert(
            collection_name=self._collection_name(kind),
            points=[
                models.PointStruct(
                    id=self._key_to_point_id(record_id),
                    vector=PLACEHOLDER_VECTOR,
                    payload=payload,
                )
            ],
        )

    async def _retrieve(self, kind: str, record_id: str) -> dict[str, Any] | None:
        results = await self.client.retrieve(
            collection_name=self._collection_name(kind),
            ids=[self._key_to_point_id(record_id)],
            with_payload=True,
        )
        if not results:
            return None
        return results[0].payload

    async def _scroll(
        self,
        kind: str,
        conditions: list[models.Condition],
    ) -> list[dict[str, Any]]:
        """Every payload matching the conditions, in no particular order.

        Scroll pages come back in point-id order, which is a hash of the
        record id, so callers sort the full result before applying a limit.
        """
        scroll_filter = models.Filter(must=conditions) if conditions else None
        payloads: list[dict[str, Any]] = []
        offset: models.ExtendedPointId | None = None
        while True:
            results, offset = await self.client.scroll(
                collection_name=self._collection_name(kind),
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
            )
            payloads.extend(r.payload for r in results if r.payload is not None)
            if offset is None:
                return payloads

    @staticmethod
    def _model_to_payload(record: BaseModel) -> dict[str, Any]:
        """Convert a model to a Qdrant payload, adding range-filter fields."""
        data = record.model_dump(mode="json")
        if isinstance(record, Delivery):
            data["next_retry_ts"] = to_timestamp(record.next_retry_at)
            data["created_ts"] = to_timestamp(record.created_at)
        return data

    @staticmethod
    def _payload_to_model(payload: dict[str, Any], model_class: type[ModelT]) -> ModelT:
        """Convert a Qdrant payload back to a model."""
        data = {k: v for k, v in payload.items() if k not in _DERIVED_FIELDS}
        return model_class.model_validate(data)
