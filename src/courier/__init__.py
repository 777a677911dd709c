"""Courier: signed, retried webhook delivery.

Delivers inventory and order events to tenant endpoints over HTTP with
HMAC-SHA256 signatures, at-least-once semantics and a fixed retry
schedule of 1 minute, 5 minutes, 30 minutes, 2 hours and 24 hours.

Quick Start:
    from courier.service import CourierService

    async with CourierService.create() as courier:
        destination = await courier.register_destination(
            tenant_id="org_1",
            url="https://example.com/hooks",
            events=["order.created"],
        )
        await courier.dispatch_event("org_1", "order.created", {"order_id": 7})

Receivers verify the X-Webhook-Signature header:
    from courier.webhooks import verify_signature

    verify_signature(request_body, secret, request.headers["X-Webhook-Signature"])
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    ConfigurationError,
    CourierError,
    DeliveryError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)

# Hooks
from .hooks import DELIVERY_FAILED, DELIVERY_SUCCEEDED, HookRegistry, hooks

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

# Models
from .models import (
    ALL_EVENT_TYPES,
    AttemptOutcome,
    AttemptResult,
    Delivery,
    DeliveryStatus,
    Destination,
    EventType,
)

# Retry policy
from .retry import BACKOFF_SCHEDULE, MAX_ATTEMPTS, backoff_seconds, next_retry_delay

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "ConfigurationError",
    "CourierError",
    "DeliveryError",
    "InvalidTransitionError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Hooks
    "DELIVERY_FAILED",
    "DELIVERY_SUCCEEDED",
    "HookRegistry",
    "hooks",
    # Logging
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
    # Models
    "ALL_EVENT_TYPES",
    "AttemptOutcome",
    "AttemptResult",
    "Delivery",
    "DeliveryStatus",
    "Destination",
    "EventType",
    # Retry policy
    "BACKOFF_SCHEDULE",
    "MAX_ATTEMPTS",
    "backoff_seconds",
    "next_retry_delay",
]
