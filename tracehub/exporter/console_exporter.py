"""Console exporter for developer visibility."""

from __future__ import annotations

import sys
from typing import Iterable

from tracehub.exporter.envelope import OutboundRequest


class ConsoleExporter:
    """Simple exporter that prints outbound requests to stdout (or provided stream)."""

    def __init__(self, stream=None, show_body: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.show_body = show_body

    def export(self, requests: Iterable[OutboundRequest]) -> bool:
        for request in requests:
            line = f"[{request.type}] url={request.url} bytes={len(request.body.encode('utf-8'))}"
            print(line, file=self.stream)
            if self.show_body:
                print(request.body, file=self.stream)
        return True

    def shutdown(self) -> None:
        return None
