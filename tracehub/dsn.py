"""DSN parsing and ingestion endpoint URLs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

from tracehub.errors import DsnError

PROTOCOL_VERSION = "7"
SUPPORTED_PROTOCOLS = ("http", "https")


@dataclass(frozen=True)
class Dsn:
    """
    Destination identifier: where events go and the key they are sent with.

    Format: ``{protocol}://{public_key}[:{secret_key}]@{host}[:{port}]/[{path}/]{project_id}``
    """

    protocol: str
    public_key: str
    host: str
    project_id: str
    port: Optional[int] = None
    secret_key: Optional[str] = None
    path: str = ""

    @classmethod
    def parse(cls, value: str) -> "Dsn":
        """
        Parse a DSN string.

        Raises:
            DsnError: if the DSN is malformed
        """
        if not isinstance(value, str) or not value.strip():
            raise DsnError("DSN must be a non-empty string")

        parts = urlsplit(value.strip())
        if parts.scheme not in SUPPORTED_PROTOCOLS:
            raise DsnError("Invalid DSN protocol", {"protocol": parts.scheme})
        if not parts.username:
            raise DsnError("DSN is missing the public key", {"dsn": value})
        if not parts.hostname:
            raise DsnError("DSN is missing the host", {"dsn": value})
        try:
            port = parts.port
        except ValueError as e:
            raise DsnError("Invalid DSN port", {"dsn": value}) from e

        path, _, project_id = parts.path.rpartition("/")
        if not project_id.isdigit():
            raise DsnError("Invalid DSN project id", {"project_id": project_id})

        return cls(
            protocol=parts.scheme,
            public_key=parts.username,
            host=parts.hostname,
            project_id=project_id,
            port=port,
            secret_key=parts.password,
            path=path.strip("/"),
        )

    def __str__(self) -> str:
        secret = f":{self.secret_key}" if self.secret_key else ""
        port = f":{self.port}" if self.port else ""
        path = f"{self.path}/" if self.path else ""
        return f"{self.protocol}://{self.public_key}{secret}@{self.host}{port}/{path}{self.project_id}"


class Api:
    """Endpoint URLs derived from a DSN."""

    def __init__(self, dsn: Dsn) -> None:
        self.dsn = dsn

    @property
    def base_url(self) -> str:
        dsn = self.dsn
        port = f":{dsn.port}" if dsn.port else ""
        path = f"/{dsn.path}" if dsn.path else ""
        return f"{dsn.protocol}://{dsn.host}{port}{path}"

    @property
    def store_endpoint(self) -> str:
        return f"{self.base_url}/api/{self.dsn.project_id}/store/"

    @property
    def envelope_endpoint(self) -> str:
        return f"{self.base_url}/api/{self.dsn.project_id}/envelope/"

    def _auth_query(self) -> str:
        return urlencode({"key": self.dsn.public_key, "version": PROTOCOL_VERSION})

    def store_endpoint_with_auth(self) -> str:
        """Store endpoint for flat event bodies, authenticated via the query string."""
        return f"{self.store_endpoint}?{self._auth_query()}"

    def envelope_endpoint_with_auth(self) -> str:
        """Envelope endpoint for transactions and sessions, authenticated via the query string."""
        return f"{self.envelope_endpoint}?{self._auth_query()}"
