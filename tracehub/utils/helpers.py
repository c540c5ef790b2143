"""Helper functions for ids and timestamps."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator
from opentelemetry.trace import format_span_id as _otel_format_span_id
from opentelemetry.trace import format_trace_id as _otel_format_trace_id

_id_generator = RandomIdGenerator()


def generate_trace_id() -> str:
    """
    Generate a new trace id.

    Returns:
        32-character lowercase hex string
    """
    return format_trace_id(_id_generator.generate_trace_id())


def generate_span_id() -> str:
    """
    Generate a new span id.

    Returns:
        16-character lowercase hex string
    """
    return format_span_id(_id_generator.generate_span_id())


def format_trace_id(trace_id: int) -> str:
    """Format an integer trace id as a 32-character hex string."""
    return _otel_format_trace_id(trace_id)


def format_span_id(span_id: int) -> str:
    """Format an integer span id as a 16-character hex string."""
    return _otel_format_span_id(span_id)


def parse_trace_id(hex_string: str) -> int:
    """
    Parse a hex string trace id into the integer form used by OpenTelemetry.

    Args:
        hex_string: 32-character hex string

    Returns:
        Trace id as int (0 for an empty string)
    """
    if not hex_string:
        return 0
    return int(hex_string, 16)


def parse_span_id(hex_string: str) -> int:
    """
    Parse a hex string span id into the integer form used by OpenTelemetry.

    Args:
        hex_string: 16-character hex string

    Returns:
        Span id as int (0 for an empty string)
    """
    if not hex_string:
        return 0
    return int(hex_string, 16)


def timestamp_now() -> float:
    """Current wall clock time in seconds since the epoch."""
    return time.time()


def format_iso_timestamp(timestamp: Optional[float] = None) -> str:
    """
    Format a timestamp as ISO 8601 UTC with millisecond precision.

    Matches the `2021-04-08T12:34:56.789Z` form used in envelope headers.
    """
    if timestamp is None:
        timestamp = timestamp_now()
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
