"""Trace context propagation: tracestate codec and trace-parent headers.

Two header values carry a trace across process boundaries:

- the trace-parent value ``{trace_id}-{span_id}[-{sampled}]``, sent in the
  ``tracehub-trace`` header (a W3C ``traceparent`` is sent alongside through
  OpenTelemetry's propagator and accepted as a fallback on the way in)
- the tracestate value, a base64 payload of trace-level metadata stored under
  the ``tracehub`` key of the W3C ``tracestate`` header

Tracestate values are list members of the form ``key=value``, so they can't
contain ``=``. The base64 padding run is therefore replaced with a single
``.`` when encoding, and the padding is recomputed from the payload length
when decoding.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, MutableMapping, Optional

from opentelemetry.trace import NonRecordingSpan, TraceFlags, get_current_span, set_span_in_context
from opentelemetry.trace import SpanContext as OTelSpanContext
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from tracehub.errors import EncodingError, MalformedHeaderError
from tracehub.utils.helpers import format_span_id, format_trace_id, parse_span_id, parse_trace_id

if TYPE_CHECKING:
    from tracehub.client import Client
    from tracehub.tracer.span import Span
    from tracehub.tracer.span_context import TransactionContext

logger = logging.getLogger(__name__)

TRACEPARENT_HEADER = "tracehub-trace"
W3C_TRACEPARENT_HEADER = "traceparent"
TRACESTATE_HEADER = "tracestate"
TRACESTATE_KEY = "tracehub"

TRACEPARENT_REGEX = re.compile(r"^([0-9a-f]{32})-([0-9a-f]{16})(?:-([01]))?$")
BASE64_REGEX = re.compile(r"^(?:[a-zA-Z0-9+/]{4})*(?:|[a-zA-Z0-9+/]{3}=|[a-zA-Z0-9+/]{2}==)$")

# Byte representation of tracestate JSON, shared with the other SDKs reading it.
TRACESTATE_TEXT_ENCODING = "utf-16-le"
PADDING_SENTINEL = "."

DEFAULT_ENVIRONMENT = "no environment specified"
DEFAULT_RELEASE = "no release specified"

_w3c_propagator = TraceContextTextMapPropagator()


@dataclass(frozen=True)
class TraceparentData:
    trace_id: str
    parent_span_id: str
    parent_sampled: Optional[bool] = None


def _truncate(value: str, limit: int = 256) -> str:
    return value if len(value) <= limit else f"{value[:limit]}..."


# Tracestate codec

def to_base64(text: str) -> str:
    """
    Encode text as header-safe base64.

    Raises:
        EncodingError: if the text can't be represented in the tracestate encoding
    """
    if not isinstance(text, str):
        raise EncodingError("Unable to convert to base64. Input isn't a string.")
    try:
        raw = text.encode(TRACESTATE_TEXT_ENCODING)
    except UnicodeEncodeError as e:
        raise EncodingError(
            "Unable to convert string to base64", {"input": _truncate(text), "error": e.reason}
        ) from e

    encoded = base64.b64encode(raw).decode("ascii")
    stripped = encoded.rstrip("=")
    if len(stripped) != len(encoded):
        return stripped + PADDING_SENTINEL
    return stripped


def from_base64(value: str) -> str:
    """
    Decode a value produced by `to_base64`.

    A trailing sentinel stands for the whole padding run, however many ``=``
    were stripped; plain base64 with its padding intact is accepted as well.

    Raises:
        EncodingError: if the value isn't valid base64 or valid encoded text
    """
    if not isinstance(value, str):
        raise EncodingError("Unable to convert from base64. Input isn't a string.")

    restored = value
    if value.endswith(PADDING_SENTINEL):
        stripped = value.rstrip(PADDING_SENTINEL)
        restored = stripped + "=" * (-len(stripped) % 4)

    if not BASE64_REGEX.match(restored):
        raise EncodingError(
            "Unable to convert from base64. Input isn't valid base64.", {"input": _truncate(value)}
        )
    try:
        return base64.b64decode(restored, validate=True).decode(TRACESTATE_TEXT_ENCODING)
    except (binascii.Error, UnicodeDecodeError) as e:
        raise EncodingError(
            "Unable to convert string from base64", {"input": _truncate(value), "error": e}
        ) from e


def encode_tracestate(
    trace_id: str,
    public_key: str,
    environment: Optional[str] = None,
    release: Optional[str] = None,
) -> str:
    """
    Build the tracestate value for a new trace.

    Raises:
        EncodingError: if the payload can't be encoded
    """
    payload = json.dumps(
        {
            "trace_id": trace_id,
            "public_key": public_key,
            "environment": environment or DEFAULT_ENVIRONMENT,
            "release": release or DEFAULT_RELEASE,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return to_base64(payload)


def decode_tracestate(value: str) -> Dict[str, Any]:
    """
    Decode a tracestate value back into its metadata.

    Raises:
        EncodingError: if the value can't be decoded or isn't a JSON object
    """
    text = from_base64(value)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise EncodingError("Tracestate payload isn't valid JSON", {"error": e.msg}) from e
    if not isinstance(data, dict):
        raise EncodingError("Tracestate payload isn't a JSON object")
    return data


def compute_tracestate(trace_id: str, client: Optional["Client"]) -> Optional[str]:
    """
    Tracestate value for a new transaction.

    Returns None without a client or DSN (nothing can be sent, so nothing is
    propagated) and an empty string if encoding fails.
    """
    if client is None:
        return None
    dsn = client.dsn
    if dsn is None:
        return None

    options = client.options
    try:
        return encode_tracestate(trace_id, dsn.public_key, options.environment, options.release)
    except EncodingError as e:
        logger.warning(f"Unable to compute tracestate for trace {trace_id}: {e}")
        return ""


# Trace-parent header

def decode_traceparent(header_value: str) -> TraceparentData:
    """
    Decode a trace-parent header value.

    Raises:
        MalformedHeaderError: if the value doesn't match the header grammar
    """
    if not isinstance(header_value, str):
        raise MalformedHeaderError("Trace-parent header value isn't a string")
    match = TRACEPARENT_REGEX.match(header_value)
    if match is None:
        raise MalformedHeaderError(
            "Malformed trace-parent header", {"value": _truncate(header_value, 64)}
        )

    trace_id, parent_span_id, sampled_flag = match.groups()
    parent_sampled = None
    if sampled_flag is not None:
        parent_sampled = sampled_flag == "1"
    return TraceparentData(trace_id, parent_span_id, parent_sampled)


def parse_traceparent(header_value: str) -> Optional[TraceparentData]:
    """Parse a trace-parent header value, returning None if it's malformed."""
    try:
        return decode_traceparent(header_value)
    except MalformedHeaderError as e:
        logger.debug(f"Ignoring incoming trace context: {e}")
        return None


def format_w3c_traceparent(span: "Span") -> str:
    """
    Format a W3C ``traceparent`` value for the span.

    Uses OpenTelemetry's propagator internally.
    """
    otel_context = OTelSpanContext(
        trace_id=parse_trace_id(span.trace_id),
        span_id=parse_span_id(span.span_id),
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.SAMPLED if span.sampled else TraceFlags.DEFAULT),
    )
    ctx = set_span_in_context(NonRecordingSpan(otel_context))

    carrier: Dict[str, str] = {}
    _w3c_propagator.inject(carrier, context=ctx)
    return carrier.get(W3C_TRACEPARENT_HEADER, "")


def parse_w3c_traceparent(header_value: str) -> Optional[TraceparentData]:
    """
    Parse a W3C ``traceparent`` value.

    Uses OpenTelemetry's W3C Trace Context parser.
    """
    if not header_value:
        return None

    ctx = _w3c_propagator.extract({W3C_TRACEPARENT_HEADER: header_value})
    otel_context = get_current_span(ctx).get_span_context()
    if not otel_context.is_valid:
        return None
    return TraceparentData(
        trace_id=format_trace_id(otel_context.trace_id),
        parent_span_id=format_span_id(otel_context.span_id),
        parent_sampled=bool(otel_context.trace_flags.sampled),
    )


# W3C tracestate list

def format_tracestate(state: Mapping[str, str]) -> str:
    """Format a W3C tracestate list (``key1=value1,key2=value2``)."""
    items = []
    for k, v in state.items():
        key = str(k).strip().lower()[:256]
        value = str(v).strip().replace(",", "_").replace("=", "_")
        if key and value:
            items.append(f"{key}={value}")
    return ",".join(items)


def parse_tracestate(header_value: str) -> Dict[str, str]:
    """Parse a W3C tracestate list into a dict, skipping malformed members."""
    if not header_value:
        return {}

    result = {}
    for item in header_value.split(","):
        key, sep, value = item.strip().partition("=")
        key = key.strip().lower()
        value = value.strip()
        if sep and key and value:
            result[key] = value
    return result


# Headers

def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _set_header(headers: MutableMapping[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing spelling of the same name."""
    for key in [k for k in headers if k.lower() == name and k != name]:
        del headers[key]
    headers[name] = value


def extract_traceparent_data(headers: Mapping[str, str]) -> Optional[TraceparentData]:
    """Read the upstream trace-parent, preferring our header over W3C ``traceparent``."""
    value = _get_header(headers, TRACEPARENT_HEADER)
    if value is not None:
        return parse_traceparent(value)

    value = _get_header(headers, W3C_TRACEPARENT_HEADER)
    if value is not None:
        return parse_w3c_traceparent(value)
    return None


def extract_tracestate(headers: Mapping[str, str]) -> Optional[str]:
    """Return our entry of the incoming ``tracestate`` header, if any."""
    return parse_tracestate(_get_header(headers, TRACESTATE_HEADER) or "").get(TRACESTATE_KEY)


def extract_trace_context(headers: Mapping[str, str], **kwargs: Any) -> Optional["TransactionContext"]:
    """
    Build a continuation TransactionContext from incoming headers.

    Extra keyword arguments (name, op, ...) are passed to the context.
    Returns None if no valid trace-parent is present.
    """
    from tracehub.tracer.span_context import TransactionContext

    traceparent = extract_traceparent_data(headers)
    if traceparent is None:
        return None
    return TransactionContext.from_traceparent(
        traceparent, tracestate=extract_tracestate(headers), **kwargs
    )


def inject_trace_headers(headers: MutableMapping[str, str], span: "Span") -> MutableMapping[str, str]:
    """
    Write trace propagation headers for an outgoing request made under `span`.

    Our tracestate entry is moved to the front of any existing tracestate list.
    Returns the same headers mapping for convenience.
    """
    _set_header(headers, TRACEPARENT_HEADER, span.to_traceparent())
    _set_header(headers, W3C_TRACEPARENT_HEADER, format_w3c_traceparent(span))

    transaction = span.transaction
    tracestate = transaction.tracestate if transaction is not None else None
    if tracestate:
        existing = parse_tracestate(_get_header(headers, TRACESTATE_HEADER) or "")
        existing.pop(TRACESTATE_KEY, None)
        _set_header(headers, TRACESTATE_HEADER, format_tracestate({TRACESTATE_KEY: tracestate, **existing}))
    return headers
