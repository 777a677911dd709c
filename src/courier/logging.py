"""Structured logging configuration for Courier.

Courier modules log through the standard library (``logging.getLogger``).
configure_logging() installs a structlog ProcessorFormatter on the root
logger so those records and native structlog loggers share one pipeline:
bound context (delivery id, event) is merged in, secrets are redacted,
and lines are rendered as JSON in production or as console text locally.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.typing import Processor

# Event-dict keys whose values never reach the log output
REDACTED_KEYS = frozenset({"secret", "signature", "authorization", "x-webhook-signature"})
REDACTED = "[redacted]"

_configured = False
_handler: logging.Handler | None = None


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor replacing secret values with a placeholder."""
    for key in list(event_dict):
        if key.lower() in REDACTED_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]


def _renderers(format: str) -> list[Processor]:
    if format.lower() == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for Courier.

    Safe to call more than once; the previous Courier handler is replaced.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: Output format - "json" for production, "text" for development.

    Example:
        ```python
        from courier.logging import configure_logging, get_logger

        configure_logging(level="DEBUG", format="text")
        get_logger(__name__).info("worker started", workers=4)
        ```
    """
    global _configured, _handler

    log_level = getattr(logging, level.upper(), logging.INFO)
    shared = _shared_processors()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(format),
            ],
        )
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(log_level)
    _handler = handler

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log messages in this task.

    Example:
        ```python
        bind_context(delivery_id="dlv_abc", event="order.created")
        logger.info("attempting")  # includes delivery_id and event
        ```
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Bind context for the duration of a block, then remove those keys.

    Used by delivery workers so that context from one job never leaks into
    the next job handled by the same worker task.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
