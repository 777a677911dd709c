"""Delivery lifecycle hooks.

Handlers are registered at startup, after which the registry is frozen
and only read. The dispatcher emits:

- ``delivery.succeeded``: a delivery reached ``success``
- ``delivery.failed``: a delivery reached ``failed`` (attempts exhausted,
  or destination missing/inactive)

Handlers receive a copy of the Delivery and may be plain functions or
coroutine functions. A failing handler is logged and skipped; it never
changes the delivery outcome.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from courier.exceptions import ConfigurationError
from courier.models import Delivery

logger = logging.getLogger(__name__)

DELIVERY_SUCCEEDED = "delivery.succeeded"
DELIVERY_FAILED = "delivery.failed"

HOOK_NAMES: tuple[str, ...] = (DELIVERY_SUCCEEDED, DELIVERY_FAILED)

HookHandler = Callable[[Delivery], Awaitable[Any] | Any]


class HookRegistry:
    """Named lists of handlers, populated once and then frozen."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[HookHandler]] = {name: [] for name in HOOK_NAMES}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, name: str, handler: HookHandler) -> None:
        """Add a handler for a hook.

        Raises:
            ConfigurationError: If the hook is unknown or the registry is frozen.
        """
        if self._frozen:
            raise ConfigurationError(f"hook registry is frozen; cannot register {name!r}")
        if name not in self._handlers:
            raise ConfigurationError(f"unknown hook {name!r}; expected one of {HOOK_NAMES}")
        self._handlers[name].append(handler)

    def on(self, name: str) -> Callable[[HookHandler], HookHandler]:
        """Decorator form of register()."""

        def decorator(handler: HookHandler) -> HookHandler:
            self.register(name, handler)
            return handler

        return decorator

    def freeze(self) -> None:
        """Stop accepting registrations."""
        self._frozen = True

    def handlers(self, name: str) -> tuple[HookHandler, ...]:
        return tuple(self._handlers.get(name, ()))

    async def emit(self, name: str, delivery: Delivery) -> int:
        """Invoke the handlers of a hook in registration order.

        Returns:
            Number of handlers that completed without raising.
        """
        completed = 0
        for handler in self.handlers(name):
            try:
                result = handler(delivery.model_copy(deep=True))
                if inspect.isawaitable(result):
                    await result
                completed += 1
            except Exception:
                logger.exception(
                    "Hook handler %r failed for %s on delivery %s",
                    getattr(handler, "__name__", handler),
                    name,
                    delivery.id,
                )
        return completed


# Process-wide registry, populated at startup
hooks = HookRegistry()


__all__ = [
    "DELIVERY_FAILED",
    "DELIVERY_SUCCEEDED",
    "HOOK_NAMES",
    "HookHandler",
    "HookRegistry",
    "hooks",
]
