"""Serialization of events and sessions into outbound request payloads.

Transactions and sessions are sent as envelopes: newline-delimited JSON with
an envelope header, an item header and the item body, without a trailing
newline. Every other event kind is sent as a flat JSON body to the store
endpoint.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from tracehub.context.propagators import from_base64
from tracehub.dsn import Api
from tracehub.errors import EncodingError
from tracehub.utils.helpers import format_iso_timestamp

if TYPE_CHECKING:
    from tracehub.session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundRequest:
    body: str
    type: str
    url: str


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _envelope(headers: Dict[str, Any], item_type: str, body: Any) -> str:
    return "\n".join([_dumps(headers), _dumps({"type": item_type}), _dumps(body)])


def event_to_request(event: Dict[str, Any], api: Api) -> OutboundRequest:
    """
    Create the outbound request for an error, message or transaction event.

    Args:
        event: The event to send
        api: Endpoint URLs for the configured DSN
    """
    if event.get("type") == "transaction":
        return transaction_to_request(event, api)
    return OutboundRequest(
        body=_dumps(event),
        type=event.get("type") or "event",
        url=api.store_endpoint_with_auth(),
    )


def transaction_to_request(event: Dict[str, Any], api: Api) -> OutboundRequest:
    """
    Create an envelope request for a transaction event.

    The tracestate value is decoded and promoted to the envelope header's
    ``trace`` field (an empty string if it can't be decoded), and left out of
    the serialized body. The event itself isn't modified.
    """
    tracestate = event.get("tracestate")
    trace_json: Optional[str] = None
    if tracestate:
        try:
            trace_json = from_base64(tracestate)
        except EncodingError as e:
            logger.warning(f"Unable to decode tracestate for envelope header: {e}")
            trace_json = ""

    envelope_headers: Dict[str, Any] = {
        "event_id": event.get("event_id"),
        "sent_at": format_iso_timestamp(),
        "trace_id": ((event.get("contexts") or {}).get("trace") or {}).get("trace_id"),
    }
    if trace_json is not None:
        envelope_headers["trace"] = trace_json

    body = {key: value for key, value in event.items() if key != "tracestate"}
    return OutboundRequest(
        body=_envelope(envelope_headers, "transaction", body),
        type="transaction",
        url=api.envelope_endpoint_with_auth(),
    )


def session_to_request(session: "Session", api: Api) -> OutboundRequest:
    """Create an envelope request for a session update."""
    return OutboundRequest(
        body=_envelope({"sent_at": format_iso_timestamp()}, "session", session.to_json()),
        type="session",
        url=api.envelope_endpoint_with_auth(),
    )
