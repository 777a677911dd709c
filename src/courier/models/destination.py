"""Webhook destination: an external endpoint subscribed to events."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from .base import generate_id, generate_secret, utc_now
from .events import ALL_EVENT_TYPES


class Destination(BaseModel):
    """A tenant's registered webhook endpoint.

    Attributes:
        id: Unique identifier for this destination.
        tenant_id: Tenant (organization) that owns the destination.
        name: Optional human-readable label.
        url: Absolute HTTP(S) endpoint receiving deliveries.
        secret: Shared secret for HMAC-SHA256 signatures. Generated when
            omitted and never shown again after creation.
        events: Event names this destination subscribes to. Treated as a
            set: duplicates are dropped, first occurrence wins. Names outside
            the catalog are accepted.
        is_active: Inactive destinations are never attempted.
        created_at: When the destination was registered.
        updated_at: When the destination was last modified.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=lambda: generate_id("dst"))
    tenant_id: str = Field(min_length=1, description="Owning tenant")
    name: str | None = Field(default=None, description="Human-readable label")
    url: HttpUrl = Field(description="Endpoint to receive deliveries")
    secret: str = Field(
        default_factory=generate_secret,
        min_length=1,
        repr=False,
        description="Shared secret for HMAC-SHA256 signatures",
    )
    events: list[str] = Field(
        default_factory=lambda: list(ALL_EVENT_TYPES),
        description="Subscribed event names",
    )
    is_active: bool = Field(default=True, description="Whether deliveries may be attempted")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("events")
    @classmethod
    def _unique_event_names(cls, events: list[str]) -> list[str]:
        if any(not name for name in events):
            raise ValueError("event names must be non-empty")
        return list(dict.fromkeys(events))

    def subscribes_to(self, event: str) -> bool:
        """Check if this destination is active and subscribed to the event."""
        return self.is_active and event in self.events

    def public_dict(self) -> dict[str, Any]:
        """JSON-ready representation without the secret."""
        return self.model_dump(mode="json", exclude={"secret"})


__all__ = ["Destination"]
