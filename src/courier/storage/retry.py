"""Retry utilities for storage operations.

Transient Qdrant failures (connection errors, timeouts, 5xx responses) are
retried with exponential backoff. Anything still failing afterwards, and
any non-transient Qdrant error, surfaces as StorageError.

This is unrelated to webhook retries: it protects the delivery record
writes themselves, which must land before an attempt goes out.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from courier.exceptions import StorageError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

STORAGE_MAX_ATTEMPTS = 3


def _is_retryable_qdrant_error(exc: BaseException) -> bool:
    """Whether a Qdrant failure is worth retrying."""
    if isinstance(exc, httpx.ConnectError | httpx.TimeoutException):
        return True
    if isinstance(exc, ResponseHandlingException):
        return True
    if isinstance(exc, UnexpectedResponse):
        return exc.status_code is not None and exc.status_code >= 500
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "Retrying Qdrant operation %s (attempt %d): %s",
        retry_state.fn.__name__ if retry_state.fn else "unknown",
        retry_state.attempt_number,
        retry_state.outcome.exception() if retry_state.outcome else None,
    )


qdrant_retry = retry(
    stop=stop_after_attempt(STORAGE_MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception(_is_retryable_qdrant_error),
    before_sleep=_log_retry,
    reraise=True,
)


def storage_operation(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Retry transient failures, then convert Qdrant errors to StorageError."""
    retrying = qdrant_retry(fn)

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await retrying(*args, **kwargs)
        except (httpx.HTTPError, UnexpectedResponse, ResponseHandlingException) as e:
            raise StorageError(f"{fn.__name__} failed: {e}") from e

    return wrapper
