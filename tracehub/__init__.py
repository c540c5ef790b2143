"""Tracehub: transaction sampling, span lifecycle and trace propagation SDK."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from tracehub.errors import (
    ConfigError,
    DsnError,
    EncodingError,
    MalformedHeaderError,
    TracehubError,
    ValidationError,
)
from tracehub.tracer import (
    Sampler,
    Span,
    SpanContext,
    SpanRecorder,
    SpanStatus,
    Transaction,
    TransactionContext,
)
from tracehub.config import ClientOptions, load_config, validate_config
from tracehub.client import Client
from tracehub.context import get_current_hub, pop_hub, push_hub, use_hub
from tracehub.hub import Hub
from tracehub.scope import Scope
from tracehub.session import Session, SessionStatus

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def _enable_debug_logging() -> None:
    sdk_logger = logging.getLogger("tracehub")
    sdk_logger.setLevel(logging.DEBUG)
    if not sdk_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[tracehub] %(levelname)s %(name)s: %(message)s"))
        sdk_logger.addHandler(handler)


def init(config_file: Optional[str] = None, exporter: Optional[Any] = None, **options: Any) -> Hub:
    """
    Create a client and hub and bind the hub to the current context.

    Args:
        config_file: Optional TOML config path (see tracehub.config)
        exporter: Receives outbound requests; without one events are dropped
        **options: ClientOptions values, overriding file and environment

    Returns:
        The bound hub

    Raises:
        ConfigError: if the configuration is invalid
    """
    client_options = load_config(config_file, **options)
    if client_options.debug:
        _enable_debug_logging()
    for warning in validate_config(client_options):
        logger.info(f"Configuration: {warning}")

    hub = Hub(Client(client_options, exporter=exporter))
    _unbind(get_current_hub())
    hub.context_token = push_hub(hub)
    return hub


def shutdown() -> None:
    """Unbind the hub bound by init() and close its client."""
    hub = get_current_hub()
    _unbind(hub)
    if hub.client is not None:
        hub.client.close()


def _unbind(hub: Hub) -> None:
    # Only bindings made by init() are undone; use_hub() blocks restore their own.
    if hub.context_token is not None:
        pop_hub(hub.context_token)
        hub.context_token = None


def start_transaction(
    transaction_context: Optional[TransactionContext] = None,
    custom_sampling_context: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> Transaction:
    """Start a transaction on the current hub."""
    return get_current_hub().start_transaction(transaction_context, custom_sampling_context, **kwargs)


def configure_scope(callback: Callable[[Scope], Any]) -> None:
    get_current_hub().configure_scope(callback)


def capture_event(event: Dict[str, Any]) -> Optional[str]:
    return get_current_hub().capture_event(event)


__all__ = [
    "__version__",
    "init",
    "shutdown",
    "start_transaction",
    "configure_scope",
    "capture_event",
    "get_current_hub",
    "use_hub",
    "Client",
    "ClientOptions",
    "Hub",
    "Scope",
    "Session",
    "SessionStatus",
    "Sampler",
    "Span",
    "SpanContext",
    "SpanRecorder",
    "SpanStatus",
    "Transaction",
    "TransactionContext",
    "TracehubError",
    "ConfigError",
    "DsnError",
    "ValidationError",
    "EncodingError",
    "MalformedHeaderError",
]
