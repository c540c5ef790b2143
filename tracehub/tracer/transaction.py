"""Transaction - the root span of a trace and the unit that gets sent."""

from __future__ import annotations

import json
import logging
import weakref
from typing import TYPE_CHECKING, Any, Dict, Optional

from tracehub.context.context import get_current_hub
from tracehub.context.propagators import compute_tracestate
from tracehub.tracer.span import Span, SpanStatus
from tracehub.tracer.span_context import TransactionContext
from tracehub.tracer.span_recorder import DEFAULT_MAX_SPANS, SpanRecorder

if TYPE_CHECKING:
    from tracehub.hub import Hub

logger = logging.getLogger(__name__)

UNLABELED_TRANSACTION = "<unlabeled transaction>"


class Transaction:
    """
    Root of a trace.

    A transaction wraps its own span record (the first entry of its span
    recorder) and adds a name, the tracestate value propagated to downstream
    services and measurements. Finishing a sampled transaction assembles an
    event from the finished child spans and hands it to the hub.

    Transactions should be started with ``Hub.start_transaction``, which
    resolves the sampling decision first.
    """

    def __init__(
        self,
        transaction_context: Optional[TransactionContext] = None,
        hub: Optional["Hub"] = None,
    ) -> None:
        """
        Initialize a transaction.

        Args:
            transaction_context: Identity, name and continuation data
            hub: Hub used to capture the finished event (defaults to the current hub)
        """
        ctx = transaction_context or TransactionContext()
        self._span = Span(ctx)
        self._span._transaction = weakref.ref(self)

        self._hub = hub if hub is not None else get_current_hub()
        self.name: str = ctx.name or ""
        self._trim_end = ctx.trim_end
        self._measurements: Dict[str, Dict[str, Any]] = {}
        self._recorder: Optional[SpanRecorder] = None

        # Inherited from upstream when continuing a trace, otherwise new.
        self._tracestate: Optional[str] = ctx.tracestate or compute_tracestate(
            self._span.trace_id, self._hub.client
        )

    # Root span record
    @property
    def span(self) -> Span:
        return self._span

    @property
    def trace_id(self) -> str:
        return self._span.trace_id

    @property
    def span_id(self) -> str:
        return self._span.span_id

    @property
    def parent_span_id(self) -> Optional[str]:
        return self._span.parent_span_id

    @property
    def sampled(self) -> Optional[bool]:
        return self._span.sampled

    @property
    def op(self) -> Optional[str]:
        return self._span.op

    @op.setter
    def op(self, value: Optional[str]) -> None:
        self._span.op = value

    @property
    def description(self) -> Optional[str]:
        return self._span.description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self._span.description = value

    @property
    def status(self) -> Optional[SpanStatus]:
        return self._span.status

    @property
    def tags(self) -> Dict[str, str]:
        return self._span.tags

    @property
    def data(self) -> Dict[str, Any]:
        return self._span.data

    @property
    def start_timestamp(self) -> float:
        return self._span.start_timestamp

    @property
    def end_timestamp(self) -> Optional[float]:
        return self._span.end_timestamp

    @property
    def is_finished(self) -> bool:
        return self._span.is_finished

    @property
    def tracestate(self) -> Optional[str]:
        """Tracestate value; computed once at construction and never changed."""
        return self._tracestate

    @property
    def measurements(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._measurements)

    @property
    def recorder(self) -> Optional[SpanRecorder]:
        return self._recorder

    @property
    def transaction(self) -> "Transaction":
        return self

    def set_name(self, name: str) -> "Transaction":
        self.name = name
        return self

    def set_tag(self, key: str, value: Any) -> "Transaction":
        self._span.set_tag(key, value)
        return self

    def set_data(self, key: str, value: Any) -> "Transaction":
        self._span.set_data(key, value)
        return self

    def set_status(self, status: SpanStatus) -> "Transaction":
        self._span.set_status(status)
        return self

    def set_http_status(self, http_status: int) -> "Transaction":
        self._span.set_http_status(http_status)
        return self

    def is_success(self) -> bool:
        return self._span.is_success()

    def set_measurements(self, measurements: Dict[str, Dict[str, Any]]) -> None:
        """Replace the observed measurements, e.g. ``{"lcp": {"value": 1.2, "unit": "second"}}``."""
        self._measurements = {name: dict(entry) for name, entry in measurements.items()}

    def set_measurement(self, name: str, value: float, unit: str = "") -> None:
        self._measurements[name] = {"value": value, "unit": unit}

    def init_span_recorder(self, maxlen: int = DEFAULT_MAX_SPANS) -> SpanRecorder:
        """Bind a span recorder holding this transaction first. Binding twice is a no-op."""
        if self._recorder is None:
            self._recorder = SpanRecorder(maxlen)
            self._recorder.add(self._span)
        return self._recorder

    def start_child(self, **kwargs: Any) -> Span:
        """Start a child span; see ``Span.start_child`` for the arguments."""
        return self._span.start_child(**kwargs)

    def to_traceparent(self) -> str:
        return self._span.to_traceparent()

    def get_trace_context(self) -> Dict[str, Any]:
        return self._span.get_trace_context()

    def finish(self, end_timestamp: Optional[float] = None) -> Optional[str]:
        """
        Finish the transaction and send it if it was sampled.

        Args:
            end_timestamp: End time in seconds (defaults to now)

        Returns:
            The captured event id, or None if the transaction was already
            finished, not sampled, or the event wasn't captured
        """
        if self._span.end_timestamp is not None:
            return None

        if not self.name:
            logger.warning(f"Transaction has no name, falling back to `{UNLABELED_TRANSACTION}`.")
            self.name = UNLABELED_TRANSACTION

        self._span.finish(end_timestamp)

        if self.sampled is not True:
            logger.debug(
                f"Discarding transaction {self.name!r} because its trace was not chosen to be sampled."
            )
            return None

        recorder = self._recorder
        finished_spans = []
        if recorder is not None:
            finished_spans = [
                span for span in recorder.spans
                if span is not self._span and span.end_timestamp is not None
            ]

        if self._trim_end and finished_spans:
            self._span.end_timestamp = max(span.end_timestamp for span in finished_spans)

        event: Dict[str, Any] = {
            "contexts": {"trace": self.get_trace_context()},
            "spans": [span.to_json() for span in finished_spans],
            "start_timestamp": self.start_timestamp,
            "tags": dict(self.tags),
            "timestamp": self.end_timestamp,
            "tracestate": self.tracestate,
            "transaction": self.name,
            "type": "transaction",
        }

        if self._measurements:
            logger.debug(f"Adding measurements to transaction: {json.dumps(self._measurements)}")
            event["measurements"] = self.measurements

        return self._hub.capture_event(event)

    def __repr__(self) -> str:
        return (
            f"<Transaction name={self.name!r} op={self.op!r} trace_id={self.trace_id} "
            f"span_id={self.span_id} sampled={self.sampled}>"
        )

    # Context manager support: the transaction is the scope's active span while open
    def __enter__(self) -> "Transaction":
        scope = self._hub.scope
        self._previous_span = scope.get_span()
        scope.set_span(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is not None and self.status is None:
                self.set_status(SpanStatus.INTERNAL_ERROR)
            self.finish()
        finally:
            self._hub.scope.set_span(self._previous_span)
        return False
