"""Hub: entry point for starting transactions and exit point for finished events."""

from __future__ import annotations

import dataclasses
import logging
from contextvars import Token
from typing import Any, Callable, Dict, Optional

from tracehub.client import Client
from tracehub.context.propagators import inject_trace_headers
from tracehub.scope import Scope
from tracehub.session import Session
from tracehub.tracer.sampler import Sampler, SamplingContext
from tracehub.tracer.span_context import TransactionContext
from tracehub.tracer.span_recorder import DEFAULT_MAX_SPANS
from tracehub.tracer.transaction import Transaction

logger = logging.getLogger(__name__)


class Hub:
    """
    Pairs a client with a scope.

    Hubs are passed explicitly or bound to the current context with
    ``tracehub.context.use_hub``; each logical request context should get
    its own hub (or at least its own scope).
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        scope: Optional[Scope] = None,
        sampler: Optional[Sampler] = None,
    ) -> None:
        """
        Args:
            client: Client that sends captured events (None disables tracing)
            scope: Scope holding the active span
            sampler: Sampler resolving transaction sampling decisions
        """
        self.client = client
        self.scope = scope or Scope()
        self.sampler = sampler or Sampler()
        self._last_event_id: Optional[str] = None
        # Set by tracehub.init() while this hub is bound to the current context.
        self.context_token: Optional[Token] = None

    def bind_client(self, client: Optional[Client]) -> None:
        self.client = client

    def configure_scope(self, callback: Callable[[Scope], Any]) -> None:
        callback(self.scope)

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_event_id

    def start_transaction(
        self,
        transaction_context: Optional[TransactionContext] = None,
        custom_sampling_context: Optional[SamplingContext] = None,
        **kwargs: Any,
    ) -> Transaction:
        """
        Start a transaction with a resolved sampling decision.

        The transaction isn't bound to the scope; use it as a context manager
        or call ``scope.set_span`` to make it the active span.

        Args:
            transaction_context: Name, op and continuation data
            custom_sampling_context: Extra data for ``traces_sampler``, such
                as normalized ``request`` or ``location`` data
            **kwargs: TransactionContext fields, used instead of or on top of
                transaction_context

        Returns:
            The new, open transaction
        """
        if transaction_context is None:
            transaction_context = TransactionContext(**kwargs)
        elif kwargs:
            transaction_context = dataclasses.replace(transaction_context, **kwargs)

        sampled = self.sampler.resolve(transaction_context, self.client, custom_sampling_context)
        transaction = Transaction(dataclasses.replace(transaction_context, sampled=sampled), hub=self)

        if sampled:
            max_spans = self.client.options.max_spans if self.client is not None else DEFAULT_MAX_SPANS
            transaction.init_span_recorder(max_spans)
        return transaction

    def capture_event(self, event: Dict[str, Any]) -> Optional[str]:
        """
        Hand an event to the client.

        Returns:
            The event id, or None if there is no client or the event was dropped
        """
        if self.client is None:
            logger.debug(f"No client bound, dropping {event.get('type') or 'event'}")
            return None
        event_id = self.client.capture_event(event)
        if event_id is not None:
            self._last_event_id = event_id
        return event_id

    def trace_headers(self) -> Dict[str, str]:
        """Propagation headers for an outgoing request made under the active span."""
        span = self.scope.get_span()
        if span is None:
            return {}
        return dict(inject_trace_headers({}, span))

    def start_session(self, **kwargs: Any) -> Session:
        """Start a session on the scope, ending the current one first."""
        self.end_session()
        options = self.client.options if self.client is not None else None
        session = Session(
            release=options.release if options else None,
            environment=options.environment if options else None,
            **kwargs,
        )
        self.scope.set_session(session)
        return session

    def end_session(self) -> None:
        session = self.scope.get_session()
        if session is None:
            return
        session.close()
        if self.client is not None:
            self.client.capture_session(session)
        self.scope.set_session(None)
