"""HTTP client helpers for context propagation."""

from __future__ import annotations

from typing import TYPE_CHECKING, MutableMapping, Optional

from tracehub.context import get_current_hub, inject_trace_headers

if TYPE_CHECKING:
    from tracehub.hub import Hub


def inject_headers(
    headers: MutableMapping[str, str], hub: Optional["Hub"] = None
) -> MutableMapping[str, str]:
    """
    Inject trace-parent/tracestate into the provided headers if the scope has an active span.

    Returns the same headers mapping for convenience.
    """
    hub = hub if hub is not None else get_current_hub()
    span = hub.scope.get_span()
    if span is not None:
        inject_trace_headers(headers, span)
    return headers
