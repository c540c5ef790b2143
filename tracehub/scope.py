"""Scope: the active span and session of one logical context."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tracehub.session import Session
    from tracehub.tracer.span import TimedSpan
    from tracehub.tracer.transaction import Transaction


class Scope:
    def __init__(self) -> None:
        self._span: Optional["TimedSpan"] = None
        self._session: Optional["Session"] = None

    def set_span(self, span: Optional["TimedSpan"]) -> "Scope":
        self._span = span
        return self

    def get_span(self) -> Optional["TimedSpan"]:
        return self._span

    def get_transaction(self) -> Optional["Transaction"]:
        """Transaction owning the active span, if any."""
        if self._span is None:
            return None
        return self._span.transaction

    def set_session(self, session: Optional["Session"]) -> "Scope":
        self._session = session
        return self

    def get_session(self) -> Optional["Session"]:
        return self._session

    def clone(self) -> "Scope":
        """Copy for a new logical context; later changes to either scope stay local."""
        scope = Scope()
        scope._span = self._span
        scope._session = self._session
        return scope
