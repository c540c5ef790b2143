"""Client: holds the options and DSN and hands serialized events to an exporter."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Union

from tracehub.config import ClientOptions
from tracehub.dsn import Api, Dsn
from tracehub.exporter.envelope import OutboundRequest, event_to_request, session_to_request
from tracehub.session import Session

logger = logging.getLogger(__name__)


class Client:
    """
    Sends captured events and sessions.

    Delivery belongs to the exporter (any object with ``export(requests)``
    and ``shutdown()``); the client only serializes and hands off. Without a
    DSN or an exporter, events are dropped.
    """

    def __init__(
        self,
        options: Union[ClientOptions, Dict[str, Any], None] = None,
        exporter: Optional[Any] = None,
    ) -> None:
        """
        Args:
            options: ClientOptions or a dict of option values
            exporter: Receives each OutboundRequest
        """
        if options is None:
            options = ClientOptions()
        elif isinstance(options, dict):
            options = ClientOptions(**options)
        self.options: ClientOptions = options
        self.dsn: Optional[Dsn] = Dsn.parse(options.dsn) if options.dsn else None
        self.api: Optional[Api] = Api(self.dsn) if self.dsn is not None else None
        self.exporter = exporter
        self._closed = False

    def capture_event(self, event: Dict[str, Any]) -> Optional[str]:
        """
        Assign an event id and send the event.

        Returns:
            The event id, or None if the event was dropped
        """
        if self._closed:
            logger.debug("Client is closed, dropping event")
            return None
        if self.api is None:
            logger.debug("No DSN configured, dropping event")
            return None

        event_id = event.get("event_id") or uuid.uuid4().hex
        event["event_id"] = event_id
        self._send(event_to_request(event, self.api))
        return event_id

    def capture_session(self, session: Session) -> None:
        if self._closed or self.api is None:
            logger.debug("Session update not sent: client closed or no DSN configured")
            return
        self._send(session_to_request(session, self.api))
        session.init = False

    def _send(self, request: OutboundRequest) -> None:
        if self.exporter is None:
            logger.debug(f"No exporter configured, dropping {request.type} request")
            return
        try:
            self.exporter.export([request])
        except Exception:
            # Delivery failures must not reach application code.
            logger.warning(f"Exporter failed to send {request.type} request", exc_info=True)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.exporter is None:
            return
        try:
            self.exporter.shutdown()
        except Exception:
            logger.warning("Exporter failed to shut down", exc_info=True)
