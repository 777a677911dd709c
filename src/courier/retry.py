"""Retry policy for webhook deliveries.

Attempts are bounded at MAX_ATTEMPTS and spaced by a fixed backoff table
rather than a formula, so the time between attempts can be read straight
off the schedule: 1 minute, 5 minutes, 30 minutes, 2 hours, 24 hours.

The delay before attempt N+1 is the table entry for attempt N, the attempt
that just failed. After the final attempt there is no delay: the delivery
is finalized as failed.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

MAX_ATTEMPTS = 5

BACKOFF_SCHEDULE: tuple[int, ...] = (60, 300, 1800, 7200, 86400)


def backoff_seconds(attempt_number: int) -> int:
    """Look up the backoff table entry for a failed attempt.

    Args:
        attempt_number: 1-based number of the attempt that just failed.

    Returns:
        Delay in seconds.

    Raises:
        ValueError: If attempt_number is outside 1..MAX_ATTEMPTS.
    """
    if not 1 <= attempt_number <= MAX_ATTEMPTS:
        raise ValueError(f"attempt_number must be in 1..{MAX_ATTEMPTS}, got {attempt_number}")
    return BACKOFF_SCHEDULE[attempt_number - 1]


def next_retry_delay(attempts: int) -> int | None:
    """Delay before the next attempt, or None when no retry is permitted.

    Args:
        attempts: Number of attempts made so far.
    """
    if attempts >= MAX_ATTEMPTS:
        return None
    if attempts < 1:
        return 0
    return backoff_seconds(attempts)


def next_retry_at(attempts: int, now: datetime | None = None) -> datetime | None:
    """When the next attempt is due, or None when no retry is permitted."""
    delay = next_retry_delay(attempts)
    if delay is None:
        return None
    return (now or datetime.now(UTC)) + timedelta(seconds=delay)


def should_retry(attempts: int) -> bool:
    """Whether another attempt is permitted after `attempts` attempts."""
    return attempts < MAX_ATTEMPTS


__all__ = [
    "BACKOFF_SCHEDULE",
    "MAX_ATTEMPTS",
    "backoff_seconds",
    "next_retry_at",
    "next_retry_delay",
    "should_retry",
]
