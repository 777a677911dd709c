"""Data models for Courier.

Destination models a tenant's subscribed endpoint; Delivery tracks one
event occurrence delivered to one destination; AttemptResult describes
the outcome of a single HTTP attempt.
"""

from .base import generate_id, generate_secret, utc_now
from .delivery import (
    RESPONSE_BODY_LIMIT,
    TERMINAL_STATUSES,
    AttemptOutcome,
    AttemptResult,
    Delivery,
    DeliveryStatus,
    is_success_status,
    truncate_body,
)
from .destination import Destination
from .events import ALL_EVENT_TYPES, EVENT_GROUPS, EventType, describe_event

__all__ = [
    # Helpers
    "generate_id",
    "generate_secret",
    "utc_now",
    # Events
    "ALL_EVENT_TYPES",
    "EVENT_GROUPS",
    "EventType",
    "describe_event",
    # Destinations
    "Destination",
    # Deliveries
    "RESPONSE_BODY_LIMIT",
    "TERMINAL_STATUSES",
    "AttemptOutcome",
    "AttemptResult",
    "Delivery",
    "DeliveryStatus",
    "is_success_status",
    "truncate_body",
]
