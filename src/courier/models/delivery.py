"""Delivery records and attempt results.

A Delivery tracks one event occurrence being transmitted to one
destination, across every attempt. Its status moves linearly from
``pending`` to either ``success`` or ``failed``; once terminal the record
refuses further transitions.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from courier.exceptions import InvalidTransitionError
from courier.retry import MAX_ATTEMPTS

from .base import generate_id, utc_now

DeliveryStatus = Literal["pending", "success", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"success", "failed"})

# Stored response bodies and error messages are cut to this many characters
RESPONSE_BODY_LIMIT = 5000


def truncate_body(text: str | None, limit: int = RESPONSE_BODY_LIMIT) -> str | None:
    """Truncate a response body or error message for storage."""
    if text is None:
        return None
    return text[:limit]


def is_success_status(status_code: int | None) -> bool:
    """Whether an HTTP status code is in the 2xx range."""
    return status_code is not None and 200 <= status_code < 300


class Delivery(BaseModel):
    """Record of one event occurrence delivered to one destination.

    Attributes:
        id: Unique identifier, also sent in the X-Webhook-Delivery header.
        destination_id: Destination this delivery targets (looked up at
            dispatch time, not owned).
        tenant_id: Tenant of the destination at creation time.
        event: Event name.
        payload: JSON-serializable body, immutable once created.
        status: pending, success or failed.
        attempts: HTTP attempts made so far (0..MAX_ATTEMPTS).
        response_status: Last observed HTTP status code.
        response_body: Last observed response body or transport error,
            truncated to RESPONSE_BODY_LIMIT characters.
        error: Description of the last failure.
        next_retry_at: When the next attempt is due while pending.
        created_at: When the delivery was created.
        completed_at: When the delivery succeeded.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=lambda: generate_id("dlv"), frozen=True)
    destination_id: str = Field(frozen=True, description="Target destination")
    tenant_id: str | None = Field(default=None, frozen=True, description="Owning tenant")
    event: str = Field(min_length=1, frozen=True, description="Event name")
    payload: dict[str, Any] = Field(
        default_factory=dict, frozen=True, description="Body sent to the destination"
    )
    status: DeliveryStatus = Field(default="pending")
    attempts: int = Field(default=0, ge=0, le=MAX_ATTEMPTS)
    response_status: int | None = Field(default=None)
    response_body: str | None = Field(default=None, max_length=RESPONSE_BODY_LIMIT)
    error: str | None = Field(default=None, max_length=RESPONSE_BODY_LIMIT)
    next_retry_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, frozen=True)
    completed_at: datetime | None = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def attempts_exhausted(self) -> bool:
        return self.attempts >= MAX_ATTEMPTS

    def _ensure_pending(self) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(self.id, self.status)

    def record_attempt(self) -> Delivery:
        """Count a new HTTP attempt. Must be persisted before the request."""
        self._ensure_pending()
        if self.attempts_exhausted:
            raise InvalidTransitionError(self.id, f"exhausted after {self.attempts} attempts")
        self.attempts += 1
        return self

    def record_response(self, status_code: int, body: str | None) -> Delivery:
        """Store the HTTP response of the current attempt."""
        self._ensure_pending()
        self.response_status = status_code
        self.response_body = truncate_body(body)
        return self

    def record_transport_error(self, message: str) -> Delivery:
        """Store a transport failure where no HTTP response was received."""
        self._ensure_pending()
        self.response_status = None
        self.response_body = truncate_body(message)
        self.error = truncate_body(message)
        return self

    def mark_success(self) -> Delivery:
        """Finalize as delivered. Requires a 2xx response_status."""
        self._ensure_pending()
        if not is_success_status(self.response_status):
            raise ValueError(
                f"delivery {self.id} cannot succeed with response status {self.response_status}"
            )
        self.status = "success"
        self.completed_at = utc_now()
        self.next_retry_at = None
        self.error = None
        return self

    def mark_retrying(self, next_retry_at: datetime, error: str) -> Delivery:
        """Keep pending and record when the next attempt is due."""
        self._ensure_pending()
        self.error = truncate_body(error)
        self.next_retry_at = next_retry_at
        return self

    def mark_failed(self, error: str) -> Delivery:
        """Finalize as failed. No further attempts occur."""
        self._ensure_pending()
        self.status = "failed"
        self.error = truncate_body(error)
        self.next_retry_at = None
        return self

    def reset_for_retry(self) -> Delivery:
        """Return a delivery to pending with a fresh attempt budget.

        This is the manual "retry delivery" operation and the only way a
        terminal delivery becomes pending again. Only failed deliveries
        qualify: a pending one is still owned by its retry sequence and a
        successful one has already been delivered.

        Raises:
            InvalidTransitionError: If the delivery is not failed.
        """
        if self.status != "failed":
            raise InvalidTransitionError(self.id, self.status)
        self.status = "pending"
        self.attempts = 0
        self.response_status = None
        self.response_body = None
        self.error = None
        self.next_retry_at = None
        self.completed_at = None
        return self


class AttemptOutcome(str, Enum):
    """Result classification of a single delivery attempt."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


class AttemptResult(BaseModel):
    """What happened in one attempt, and what the scheduler should do next.

    Attributes:
        delivery_id: Delivery the attempt belonged to.
        outcome: success, retryable_failure or terminal_failure.
        detail: Human-readable description.
        attempts: Attempt count after this attempt.
        response_status: HTTP status received, if any.
        retry_after_seconds: Delay before the next attempt; only set for
            retryable failures.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    delivery_id: str
    outcome: AttemptOutcome
    detail: str = ""
    attempts: int = Field(default=0, ge=0, le=MAX_ATTEMPTS)
    response_status: int | None = None
    retry_after_seconds: int | None = Field(default=None, ge=0)

    @property
    def should_retry(self) -> bool:
        return self.outcome is AttemptOutcome.RETRYABLE_FAILURE


__all__ = [
    "RESPONSE_BODY_LIMIT",
    "TERMINAL_STATUSES",
    "AttemptOutcome",
    "AttemptResult",
    "Delivery",
    "DeliveryStatus",
    "is_success_status",
    "truncate_body",
]
