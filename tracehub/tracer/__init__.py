"""Span, transaction and sampling components for the tracing SDK."""

from tracehub.tracer.span_context import SpanContext, TransactionContext
from tracehub.tracer.span import Span, SpanStatus, TimedSpan
from tracehub.tracer.span_recorder import DEFAULT_MAX_SPANS, SpanRecorder
from tracehub.tracer.sampler import Sampler, build_sampling_context, coerce_sample_rate, is_valid_sample_rate
from tracehub.tracer.transaction import UNLABELED_TRANSACTION, Transaction

__all__ = [
    "SpanContext",
    "TransactionContext",
    "Span",
    "SpanStatus",
    "TimedSpan",
    "DEFAULT_MAX_SPANS",
    "SpanRecorder",
    "Sampler",
    "build_sampling_context",
    "coerce_sample_rate",
    "is_valid_sample_rate",
    "UNLABELED_TRANSACTION",
    "Transaction",
]
