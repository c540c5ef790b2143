"""Context helpers for locating the current hub - using OpenTelemetry's context API.

The current hub is stored in the OpenTelemetry context (``contextvars``
underneath), so each thread and each asyncio task sees the hub bound in its
own logical context. Nothing here is module-level mutable state.
"""

from contextlib import contextmanager
from contextvars import Token
from typing import TYPE_CHECKING, Iterator

from opentelemetry import context as context_api

if TYPE_CHECKING:
    from tracehub.hub import Hub

_HUB_KEY = context_api.create_key("tracehub-hub")


def get_current_hub() -> "Hub":
    """
    Return the hub bound to the current context.

    Without a bound hub a new, client-less hub is returned, so tracing is
    effectively disabled rather than failing.
    """
    hub = context_api.get_value(_HUB_KEY)
    if hub is None:
        from tracehub.hub import Hub
        return Hub()
    return hub


def push_hub(hub: "Hub") -> Token:
    """
    Bind a hub to the current context.

    Returns:
        Token needed to restore the previous binding
    """
    return context_api.attach(context_api.set_value(_HUB_KEY, hub))


def pop_hub(token: Token) -> None:
    """
    Restore the previous hub binding using the provided token.

    Args:
        token: Token returned by push_hub()
    """
    context_api.detach(token)


@contextmanager
def use_hub(hub: "Hub") -> Iterator["Hub"]:
    """Bind `hub` for the duration of a block, e.g. one request."""
    token = push_hub(hub)
    try:
        yield hub
    finally:
        pop_hub(token)
