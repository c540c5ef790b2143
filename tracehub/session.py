"""Release-health session tracked on the scope and sent as an envelope item."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, Optional

from tracehub.utils.helpers import format_iso_timestamp, timestamp_now


class SessionStatus(str, Enum):
    OK = "ok"
    EXITED = "exited"
    CRASHED = "crashed"
    ABNORMAL = "abnormal"


class Session:
    """A session: one run of the application, closed as exited, crashed or abnormal."""

    def __init__(
        self,
        release: Optional[str] = None,
        environment: Optional[str] = None,
        did: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.sid = uuid.uuid4().hex
        self.did = did
        self.started = timestamp_now()
        self.timestamp = self.started
        self.duration = 0.0
        self.status = SessionStatus.OK
        self.errors = 0
        self.init = True
        self.release = release
        self.environment = environment
        self.ip_address = ip_address
        self.user_agent = user_agent

    def update(
        self,
        status: Optional[SessionStatus] = None,
        errors: Optional[int] = None,
        did: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        """Record a change; every update refreshes the timestamp and duration."""
        self.timestamp = timestamp if timestamp is not None else timestamp_now()
        self.duration = self.timestamp - self.started
        if status is not None:
            self.status = status
        if errors is not None:
            self.errors = errors
        if did is not None:
            self.did = did

    def close(self, status: Optional[SessionStatus] = None) -> None:
        """Close the session; a session still `ok` is closed as `exited`."""
        if status is not None:
            self.update(status=status)
        elif self.status is SessionStatus.OK:
            self.update(status=SessionStatus.EXITED)
        else:
            self.update()

    def to_json(self) -> Dict[str, Any]:
        attrs = {
            "release": self.release,
            "environment": self.environment,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }
        payload = {
            "sid": self.sid,
            "init": self.init,
            "started": format_iso_timestamp(self.started),
            "timestamp": format_iso_timestamp(self.timestamp),
            "status": self.status.value,
            "errors": self.errors,
            "did": self.did,
            "duration": self.duration,
            "attrs": {k: v for k, v in attrs.items() if v is not None},
        }
        return {k: v for k, v in payload.items() if v is not None}
