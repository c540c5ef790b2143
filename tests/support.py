"""Test doubles shared across the suite."""

import json

DSN = "https://publickey@ingest.example.com/42"


class RecordingExporter:
    """Keeps every outbound request instead of sending it."""

    def __init__(self):
        self.requests = []
        self.shut_down = False

    def export(self, requests):
        self.requests.extend(requests)
        return True

    def shutdown(self):
        self.shut_down = True

    def envelope_parts(self, index=-1):
        """Decode the three JSON lines of a recorded envelope."""
        return [json.loads(line) for line in self.requests[index].body.split("\n")]


class FixedRandom:
    """Random source that always returns the same value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value
