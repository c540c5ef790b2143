"""Sampling decisions for transactions."""

from __future__ import annotations

import logging
import math
import numbers
import random
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from tracehub.errors import ValidationError
from tracehub.tracer.span_context import TransactionContext

if TYPE_CHECKING:
    from tracehub.client import Client

logger = logging.getLogger(__name__)

SamplingContext = Dict[str, Any]


def coerce_sample_rate(value: Any) -> float:
    """
    Normalize a sample rate (fixed or returned by a sampler) to a probability.

    Booleans count as 1 and 0.

    Raises:
        ValidationError: if the value isn't a boolean or a number in [0, 1]
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if not isinstance(value, numbers.Real) or math.isnan(value):
        raise ValidationError(
            "Given sample rate is invalid. Sample rate must be a boolean or a number between 0 and 1.",
            {"value": repr(value), "type": type(value).__name__},
        )
    if value < 0 or value > 1:
        raise ValidationError(
            "Given sample rate is invalid. Sample rate must be between 0 and 1.",
            {"value": value},
        )
    return float(value)


def is_valid_sample_rate(value: Any) -> bool:
    """Check a sample rate, logging a warning if it's invalid."""
    try:
        coerce_sample_rate(value)
    except ValidationError as e:
        logger.warning(f"[Tracing] {e}")
        return False
    return True


def build_sampling_context(
    transaction_context: TransactionContext,
    custom_sampling_context: Optional[SamplingContext] = None,
) -> SamplingContext:
    """
    Data handed to a ``traces_sampler`` function.

    Contains the transaction context and the parent's decision, plus whatever
    the runtime integration supplies (normalized ``request`` data on servers,
    ``location`` data in browsers and workers).
    """
    sampling_context: SamplingContext = {
        "transaction_context": transaction_context,
        "parent_sampled": transaction_context.parent_sampled,
    }
    sampling_context.update(custom_sampling_context or {})
    return sampling_context


class Sampler:
    """
    Head-based sampler resolving whether a transaction is sampled.

    Precedence, first match wins:

    1. an explicit ``sampled`` on the transaction context
    2. tracing disabled (no client, or neither a rate nor a sampler configured)
    3. the ``traces_sampler`` function, called with the sampling context
    4. the parent's decision (only when there is no ``traces_sampler``)
    5. the fixed ``traces_sample_rate``

    Invalid rates are logged and resolve to False; resolving never raises.
    """

    def __init__(self, random_source: Optional[random.Random] = None) -> None:
        """
        Args:
            random_source: Source of random numbers, substitutable for
                deterministic tests (defaults to the shared module-level one)
        """
        self._random: Callable[[], float] = (
            random_source.random if random_source is not None else random.random
        )

    def resolve(
        self,
        transaction_context: TransactionContext,
        client: Optional["Client"],
        custom_sampling_context: Optional[SamplingContext] = None,
    ) -> bool:
        """Resolve the sampling decision for a transaction about to start."""
        if isinstance(transaction_context.sampled, bool):
            return transaction_context.sampled

        options = client.options if client is not None else None
        if options is None or (
            options.traces_sample_rate is None and options.traces_sampler is None
        ):
            return False

        if options.traces_sampler is not None:
            sampling_context = build_sampling_context(transaction_context, custom_sampling_context)
            try:
                value = options.traces_sampler(sampling_context)
            except Exception:
                logger.warning(
                    "[Tracing] Discarding transaction because traces_sampler raised an exception.",
                    exc_info=True,
                )
                return False
            source = "traces_sampler returned 0 or False"
        elif isinstance(transaction_context.parent_sampled, bool):
            return transaction_context.parent_sampled
        else:
            value = options.traces_sample_rate
            source = "traces_sample_rate is set to 0"

        try:
            rate = coerce_sample_rate(value)
        except ValidationError as e:
            logger.warning(f"[Tracing] Discarding transaction: {e}")
            return False

        if rate == 0:
            logger.debug(f"[Tracing] Discarding transaction because {source}.")
            return False

        sampled = self._random() < rate
        if not sampled:
            logger.debug(
                "[Tracing] Discarding transaction because it's not included in the random sample "
                f"(sampling rate = {rate})."
            )
        return sampled
