"""Courier exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from CourierError for easy catching.
"""

from __future__ import annotations


class CourierError(Exception):
    """Base exception for all Courier errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "courier_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(CourierError):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class NotFoundError(CourierError):
    """Resource not found.

    Raised when a destination or delivery doesn't exist.

    Attributes:
        resource_type: Type of resource (e.g., "destination", "delivery").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class StorageError(CourierError):
    """Storage operation failed.

    Raised when a Qdrant operation fails after retries.
    """

    code: str = "storage_error"


class ConfigurationError(CourierError):
    """Configuration error.

    Raised when required configuration is missing or invalid, or when the
    hook registry is modified after startup.
    """

    code: str = "configuration_error"


class InvalidTransitionError(CourierError):
    """A delivery state transition is not allowed.

    Raised when something tries to mutate a delivery that already reached
    a terminal status, or manually retries one that has not failed.

    Attributes:
        delivery_id: ID of the delivery.
        status: Current status of the delivery.
    """

    code: str = "invalid_transition"

    def __init__(self, delivery_id: str, status: str) -> None:
        self.delivery_id = delivery_id
        self.status = status
        super().__init__(f"delivery {delivery_id} is already {status}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "delivery_id": self.delivery_id,
                "status": self.status,
                "message": self.message,
            }
        }


class DeliveryError(CourierError):
    """Webhook delivery machinery failed.

    Raised for failures of the delivery pipeline itself (queue not running,
    worker misconfiguration), never for a failed HTTP attempt, which is
    recorded on the delivery instead.
    """

    code: str = "delivery_error"
