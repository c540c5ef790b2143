"""Utility functions for Tracehub SDK."""

from tracehub.utils.helpers import (
    format_iso_timestamp,
    format_span_id,
    format_trace_id,
    generate_span_id,
    generate_trace_id,
    parse_span_id,
    parse_trace_id,
    timestamp_now,
)

__all__ = [
    "format_iso_timestamp",
    "format_span_id",
    "format_trace_id",
    "generate_span_id",
    "generate_trace_id",
    "parse_span_id",
    "parse_trace_id",
    "timestamp_now",
]
