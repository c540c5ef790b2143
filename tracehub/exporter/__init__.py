"""Outbound payload serialization and exporters."""

from tracehub.exporter.console_exporter import ConsoleExporter
from tracehub.exporter.envelope import (
    OutboundRequest,
    event_to_request,
    session_to_request,
    transaction_to_request,
)

__all__ = [
    "ConsoleExporter",
    "OutboundRequest",
    "event_to_request",
    "session_to_request",
    "transaction_to_request",
]
