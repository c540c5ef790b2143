"""Context records used to create spans and transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from tracehub.context.propagators import TraceparentData
    from tracehub.tracer.span import SpanStatus


@dataclass
class SpanContext:
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    parent_span_id: Optional[str] = None
    sampled: Optional[bool] = None
    op: Optional[str] = None
    description: Optional[str] = None
    status: Optional["SpanStatus"] = None
    tags: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    start_timestamp: Optional[float] = None


@dataclass
class TransactionContext(SpanContext):
    """Everything needed to start a transaction, including continuation data."""

    name: str = ""
    parent_sampled: Optional[bool] = None
    tracestate: Optional[str] = None
    trim_end: bool = False

    @classmethod
    def from_traceparent(
        cls,
        traceparent: "TraceparentData",
        tracestate: Optional[str] = None,
        **kwargs: Any,
    ) -> "TransactionContext":
        """Build a context that continues an upstream trace."""
        return cls(
            trace_id=traceparent.trace_id,
            parent_span_id=traceparent.parent_span_id,
            parent_sampled=traceparent.parent_sampled,
            tracestate=tracestate,
            **kwargs,
        )
