"""Span record - a timed unit of work inside a trace."""

from __future__ import annotations

import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

from tracehub.tracer.span_context import SpanContext
from tracehub.utils.helpers import generate_span_id, generate_trace_id, timestamp_now

if TYPE_CHECKING:
    from tracehub.tracer.span_recorder import SpanRecorder
    from tracehub.tracer.transaction import Transaction


class SpanStatus(str, Enum):
    OK = "ok"
    CANCELLED = "cancelled"
    UNKNOWN_ERROR = "unknown_error"
    INVALID_ARGUMENT = "invalid_argument"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    FAILED_PRECONDITION = "failed_precondition"
    ABORTED = "aborted"
    OUT_OF_RANGE = "out_of_range"
    UNIMPLEMENTED = "unimplemented"
    INTERNAL_ERROR = "internal_error"
    UNAVAILABLE = "unavailable"
    DATA_LOSS = "data_loss"
    UNAUTHENTICATED = "unauthenticated"

    @classmethod
    def from_http_code(cls, http_status: int) -> "SpanStatus":
        """Map an HTTP response status code to a span status."""
        if http_status < 400:
            return cls.OK
        if 400 <= http_status < 500:
            return {
                401: cls.UNAUTHENTICATED,
                403: cls.PERMISSION_DENIED,
                404: cls.NOT_FOUND,
                409: cls.ALREADY_EXISTS,
                413: cls.FAILED_PRECONDITION,
                429: cls.RESOURCE_EXHAUSTED,
            }.get(http_status, cls.INVALID_ARGUMENT)
        if 500 <= http_status < 600:
            return {
                501: cls.UNIMPLEMENTED,
                503: cls.UNAVAILABLE,
                504: cls.DEADLINE_EXCEEDED,
            }.get(http_status, cls.INTERNAL_ERROR)
        return cls.UNKNOWN_ERROR


class TimedSpan(Protocol):
    """Interface shared by span records and transactions."""

    trace_id: str
    span_id: str
    start_timestamp: float
    end_timestamp: Optional[float]

    @property
    def sampled(self) -> Optional[bool]: ...

    @property
    def transaction(self) -> Optional["Transaction"]: ...

    def start_child(self, **kwargs: Any) -> "Span": ...

    def finish(self, end_timestamp: Optional[float] = None) -> Optional[str]: ...

    def to_traceparent(self) -> str: ...


class Span:
    """
    A timed unit of work with an identity, an optional parent and metadata.

    Spans are created through ``Transaction.start_child`` or ``Span.start_child``.
    The owning transaction and the shared recorder are held as weak
    references: the recorder owns the spans, never the other way round.
    """

    def __init__(self, span_context: Optional[SpanContext] = None) -> None:
        """
        Initialize a span record.

        Args:
            span_context: Identity and metadata; missing ids are generated
        """
        ctx = span_context or SpanContext()
        self.trace_id: str = ctx.trace_id or generate_trace_id()
        self.span_id: str = ctx.span_id or generate_span_id()
        self.parent_span_id: Optional[str] = ctx.parent_span_id
        self._sampled: Optional[bool] = ctx.sampled
        self.op: Optional[str] = ctx.op
        self.description: Optional[str] = ctx.description
        self.status: Optional[SpanStatus] = ctx.status
        self.tags: Dict[str, str] = dict(ctx.tags)
        self.data: Dict[str, Any] = dict(ctx.data)
        self.start_timestamp: float = (
            ctx.start_timestamp if ctx.start_timestamp is not None else timestamp_now()
        )
        self.end_timestamp: Optional[float] = None

        self._recorder: Optional["weakref.ReferenceType[SpanRecorder]"] = None
        self._transaction: Optional["weakref.ReferenceType[Transaction]"] = None

    @property
    def sampled(self) -> Optional[bool]:
        """Sampling decision; immutable once the span exists."""
        return self._sampled

    @property
    def recorder(self) -> Optional["SpanRecorder"]:
        return self._recorder() if self._recorder is not None else None

    @property
    def transaction(self) -> Optional["Transaction"]:
        """The owning transaction, if it is still alive."""
        return self._transaction() if self._transaction is not None else None

    @property
    def is_finished(self) -> bool:
        return self.end_timestamp is not None

    def start_child(
        self,
        op: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, Any]] = None,
        status: Optional[SpanStatus] = None,
        start_timestamp: Optional[float] = None,
    ) -> "Span":
        """
        Start a child span sharing this span's trace id and sampling decision.

        Children may be opened after the owning transaction finished; they are
        still recorded as long as the recorder has room.
        """
        child = Span(
            SpanContext(
                trace_id=self.trace_id,
                parent_span_id=self.span_id,
                sampled=self.sampled,
                op=op,
                description=description,
                status=status,
                tags=dict(tags or {}),
                data=dict(data or {}),
                start_timestamp=start_timestamp,
            )
        )
        child._transaction = self._transaction

        recorder = self.recorder
        if recorder is not None:
            recorder.add(child)
        return child

    def set_tag(self, key: str, value: Any) -> "Span":
        self.tags[key] = str(value)
        return self

    def set_data(self, key: str, value: Any) -> "Span":
        self.data[key] = value
        return self

    def set_status(self, status: SpanStatus) -> "Span":
        self.status = status
        return self

    def set_http_status(self, http_status: int) -> "Span":
        """Tag the HTTP status code and derive the span status from it."""
        self.set_tag("http.status_code", http_status)
        return self.set_status(SpanStatus.from_http_code(http_status))

    def is_success(self) -> bool:
        return self.status is SpanStatus.OK

    def finish(self, end_timestamp: Optional[float] = None) -> None:
        """Set the end timestamp. Finishing twice keeps the first timestamp."""
        if self.end_timestamp is not None:
            return
        self.end_timestamp = end_timestamp if end_timestamp is not None else timestamp_now()

    def to_traceparent(self) -> str:
        """Header value `{trace_id}-{span_id}[-{sampled}]` for downstream calls."""
        value = f"{self.trace_id}-{self.span_id}"
        if self.sampled is not None:
            value += "-1" if self.sampled else "-0"
        return value

    def get_trace_context(self) -> Dict[str, Any]:
        """The `contexts.trace` payload of an event rooted at this span."""
        context = {
            "data": self.data or None,
            "description": self.description,
            "op": self.op,
            "parent_span_id": self.parent_span_id,
            "span_id": self.span_id,
            "status": self.status.value if self.status is not None else None,
            "tags": self.tags or None,
            "trace_id": self.trace_id,
        }
        return {k: v for k, v in context.items() if v is not None}

    def to_json(self) -> Dict[str, Any]:
        payload = {
            "data": self.data or None,
            "description": self.description,
            "op": self.op,
            "parent_span_id": self.parent_span_id,
            "span_id": self.span_id,
            "start_timestamp": self.start_timestamp,
            "status": self.status.value if self.status is not None else None,
            "tags": self.tags or None,
            "timestamp": self.end_timestamp,
            "trace_id": self.trace_id,
        }
        return {k: v for k, v in payload.items() if v is not None}

    def __repr__(self) -> str:
        return (
            f"<Span op={self.op!r} trace_id={self.trace_id} span_id={self.span_id} "
            f"parent_span_id={self.parent_span_id} sampled={self.sampled}>"
        )

    # Context manager support
    def __enter__(self) -> "Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None and self.status is None:
            self.set_status(SpanStatus.INTERNAL_ERROR)
        self.finish()
        return False
