"""Helpers for runtime integrations that originate or continue traces."""

from tracehub.instrumentation.http_client import inject_headers
from tracehub.instrumentation.http_server import extract_parent_context, start_server_transaction

__all__ = [
    "inject_headers",
    "extract_parent_context",
    "start_server_transaction",
]
