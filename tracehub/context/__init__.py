"""Context utilities for the tracing SDK."""

from tracehub.context.context import get_current_hub, pop_hub, push_hub, use_hub
from tracehub.context.propagators import (
    TRACEPARENT_HEADER,
    TRACESTATE_HEADER,
    TRACESTATE_KEY,
    W3C_TRACEPARENT_HEADER,
    TraceparentData,
    compute_tracestate,
    decode_traceparent,
    decode_tracestate,
    encode_tracestate,
    extract_trace_context,
    extract_traceparent_data,
    extract_tracestate,
    format_tracestate,
    format_w3c_traceparent,
    from_base64,
    inject_trace_headers,
    parse_traceparent,
    parse_tracestate,
    parse_w3c_traceparent,
    to_base64,
)

__all__ = [
    "get_current_hub",
    "push_hub",
    "pop_hub",
    "use_hub",
    "TRACEPARENT_HEADER",
    "TRACESTATE_HEADER",
    "TRACESTATE_KEY",
    "W3C_TRACEPARENT_HEADER",
    "TraceparentData",
    "compute_tracestate",
    "decode_traceparent",
    "decode_tracestate",
    "encode_tracestate",
    "extract_trace_context",
    "extract_traceparent_data",
    "extract_tracestate",
    "format_tracestate",
    "format_w3c_traceparent",
    "from_base64",
    "inject_trace_headers",
    "parse_traceparent",
    "parse_tracestate",
    "parse_w3c_traceparent",
    "to_base64",
]
