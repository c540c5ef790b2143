"""Bounded, ordered collection of the spans belonging to one transaction."""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from tracehub.tracer.span import Span

logger = logging.getLogger(__name__)

DEFAULT_MAX_SPANS = 1000


class SpanRecorder:
    """
    Flat store of span records in insertion order.

    The first entry is the transaction's own root record and is never evicted.
    Once more than ``maxlen`` entries are held, further additions are dropped
    and detached from the recorder, so their descendants are dropped too.
    Spans only keep a weak reference back to the recorder; the owning
    transaction is the sole strong owner.
    """

    def __init__(self, maxlen: int = DEFAULT_MAX_SPANS) -> None:
        self.maxlen = maxlen
        self._spans: List["Span"] = []
        self.dropped = 0

    def add(self, span: "Span") -> bool:
        """
        Record a span.

        Returns:
            True if the span was recorded, False if it was dropped
        """
        if len(self._spans) > self.maxlen:
            span._recorder = None
            self.dropped += 1
            if self.dropped == 1:
                logger.debug(
                    f"Span recorder full ({self.maxlen} spans), dropping further spans "
                    f"for trace {span.trace_id}"
                )
            return False

        span._recorder = weakref.ref(self)
        self._spans.append(span)
        return True

    @property
    def spans(self) -> Tuple["Span", ...]:
        return tuple(self._spans)

    @property
    def root(self) -> Optional["Span"]:
        return self._spans[0] if self._spans else None

    def get(self, span_id: str) -> Optional["Span"]:
        for span in self._spans:
            if span.span_id == span_id:
                return span
        return None

    def __len__(self) -> int:
        return len(self._spans)
