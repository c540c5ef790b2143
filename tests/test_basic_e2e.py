"""Basic smoke tests for the Tracehub SDK.

Quick sanity checks that core functionality works end to end: two services
share one trace through propagated headers and the sampled transaction
reaches the exporter.
"""

import json

import pytest

import tracehub
from tracehub.instrumentation import inject_headers, start_server_transaction

from tests.support import DSN, RecordingExporter


def test_version_exposed():
    """Smoke test: version is accessible."""
    assert hasattr(tracehub, '__version__')
    assert isinstance(tracehub.__version__, str)
    assert len(tracehub.__version__) > 0


def test_two_services_share_a_trace():
    """Smoke test: frontend -> backend request carries the trace and its tracestate."""
    frontend_exporter, backend_exporter = RecordingExporter(), RecordingExporter()
    frontend = tracehub.Hub(tracehub.Client(
        {"dsn": DSN, "traces_sample_rate": 1, "environment": "dogpark", "release": "off.leash.park"},
        exporter=frontend_exporter,
    ))
    backend = tracehub.Hub(tracehub.Client(
        {"dsn": "https://backendkey@ingest.example.com/43", "traces_sample_rate": 0},
        exporter=backend_exporter,
    ))

    with tracehub.use_hub(frontend):
        with tracehub.start_transaction(name="/checkout", op="pageload") as page:
            with page.start_child(op="http.client", description="POST /api/treats") as request_span:
                frontend.scope.set_span(request_span)
                headers = inject_headers({})

                with tracehub.use_hub(backend):
                    with start_server_transaction("POST /api/treats", headers) as handler:
                        handler.start_child(op="db.query", description="SELECT treats").finish()

    assert handler.trace_id == page.trace_id
    assert handler.parent_span_id == request_span.span_id
    assert handler.sampled is True

    frontend_header = json.loads(frontend_exporter.requests[0].body.split("\n")[0])
    backend_header = json.loads(backend_exporter.requests[0].body.split("\n")[0])
    assert frontend_header["trace_id"] == backend_header["trace_id"] == page.trace_id
    # downstream reports the trace under the upstream's public key
    assert backend_header["trace"] == frontend_header["trace"]
    assert json.loads(backend_header["trace"])["public_key"] == "publickey"

    backend_body = json.loads(backend_exporter.requests[0].body.split("\n")[2])
    assert [span["op"] for span in backend_body["spans"]] == ["db.query"]


def test_unsampled_trace_sends_nothing():
    """Smoke test: an unsampled transaction never reaches the exporter."""
    exporter = RecordingExporter()
    hub = tracehub.Hub(tracehub.Client({"dsn": DSN, "traces_sample_rate": 0}, exporter=exporter))

    with tracehub.use_hub(hub):
        with tracehub.start_transaction(name="/idle") as transaction:
            transaction.start_child(op="noop").finish()

    assert transaction.sampled is False
    assert exporter.requests == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
