"""Catalog of events the inventory domain emits to webhooks."""

from typing import Literal

EventType = Literal[
    "product.created",
    "product.updated",
    "product.deleted",
    "product.low_stock",
    "product.out_of_stock",
    "order.created",
    "order.updated",
    "order.status_changed",
    "order.approved",
    "order.rejected",
    "stock.adjusted",
    "purchase_order.created",
    "purchase_order.received",
    "purchase_order.cancelled",
]

EVENT_GROUPS: dict[str, dict[str, str]] = {
    "Product": {
        "product.created": "When a new product is created",
        "product.updated": "When a product is updated",
        "product.deleted": "When a product is deleted",
        "product.low_stock": "When product stock falls below minimum",
        "product.out_of_stock": "When product stock reaches zero",
    },
    "Order": {
        "order.created": "When a new order is created",
        "order.updated": "When an order is updated",
        "order.status_changed": "When order status changes",
        "order.approved": "When an order is approved",
        "order.rejected": "When an order is rejected",
    },
    "Stock": {
        "stock.adjusted": "When stock is manually adjusted",
    },
    "Purchase Order": {
        "purchase_order.created": "When a purchase order is created",
        "purchase_order.received": "When a purchase order is received",
        "purchase_order.cancelled": "When a purchase order is cancelled",
    },
}

ALL_EVENT_TYPES: list[EventType] = [
    event  # type: ignore[misc]
    for group in EVENT_GROUPS.values()
    for event in group
]


def describe_event(event: str) -> str | None:
    """Human-readable description of an event, or None if unknown."""
    for events in EVENT_GROUPS.values():
        if event in events:
            return events[event]
    return None


__all__ = ["ALL_EVENT_TYPES", "EVENT_GROUPS", "EventType", "describe_event"]
