"""HTTP server helpers for continuing incoming traces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from tracehub.context import extract_trace_context, get_current_hub
from tracehub.tracer.span_context import TransactionContext

if TYPE_CHECKING:
    from tracehub.hub import Hub
    from tracehub.tracer.transaction import Transaction


def extract_parent_context(headers: Mapping[str, str], **kwargs: Any) -> TransactionContext:
    """
    Build the transaction context for an incoming request.

    Continues the upstream trace when the headers carry a valid trace-parent,
    otherwise starts a new one.
    """
    return extract_trace_context(headers, **kwargs) or TransactionContext(**kwargs)


def start_server_transaction(
    name: str,
    headers: Mapping[str, str],
    request: Optional[Dict[str, Any]] = None,
    hub: Optional["Hub"] = None,
    op: str = "http.server",
) -> "Transaction":
    """
    Start a transaction for an incoming request.

    Args:
        name: Transaction name, e.g. the route
        headers: Incoming request headers
        request: Normalized request data ({headers, method, url, cookies,
            query_string}) passed to ``traces_sampler`` as ``request``
        hub: Hub to start the transaction on (defaults to the current hub)
        op: Operation name

    Returns the transaction (use it with 'with' to make it the active span).
    """
    hub = hub if hub is not None else get_current_hub()
    context = extract_parent_context(headers, name=name, op=op)
    sampling_context = {"request": request} if request is not None else None
    return hub.start_transaction(context, custom_sampling_context=sampling_context)
