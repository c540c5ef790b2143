"""Tests for the hub, client, scope and context binding."""

import contextvars
import logging
import threading

import pytest

import tracehub
from tracehub import Client, Hub, SessionStatus, get_current_hub, use_hub
from tracehub.context.propagators import TRACEPARENT_HEADER, TRACESTATE_HEADER
from tracehub.instrumentation import extract_parent_context, inject_headers, start_server_transaction

from tests.support import DSN, RecordingExporter


class TestClient:
    def test_capture_event_assigns_id(self, exporter):
        client = Client({"dsn": DSN}, exporter=exporter)
        event = {"message": "dogs are great"}

        event_id = client.capture_event(event)

        assert event["event_id"] == event_id
        assert len(event_id) == 32
        assert exporter.requests[0].type == "event"

    def test_no_dsn_drops_event(self, exporter):
        client = Client(exporter=exporter)
        assert client.capture_event({"message": "hi"}) is None
        assert exporter.requests == []

    def test_closed_client_drops_event(self, exporter):
        client = Client({"dsn": DSN}, exporter=exporter)
        client.close()
        assert exporter.shut_down is True
        assert client.capture_event({"message": "hi"}) is None

    def test_exporter_failure_is_logged(self, caplog):
        class FailingExporter(RecordingExporter):
            def export(self, requests):
                raise ConnectionError("no network at the dog park")

        client = Client({"dsn": DSN}, exporter=FailingExporter())
        with caplog.at_level(logging.WARNING, logger="tracehub"):
            event_id = client.capture_event({"message": "hi"})

        assert event_id is not None
        assert any("Exporter failed" in r.getMessage() for r in caplog.records)

    def test_exporter_shutdown_failure_is_logged(self, caplog):
        class FailingExporter(RecordingExporter):
            def shutdown(self):
                raise ConnectionError("no network at the dog park")

        client = Client({"dsn": DSN}, exporter=FailingExporter())
        with caplog.at_level(logging.WARNING, logger="tracehub"):
            client.close()
            client.close()

        assert client.capture_event({"message": "hi"}) is None
        assert [r.getMessage() for r in caplog.records] == ["Exporter failed to shut down"]

    def test_no_exporter(self):
        assert Client({"dsn": DSN}).capture_event({"message": "hi"}) is not None


class TestHub:
    def test_capture_without_client(self):
        assert Hub().capture_event({"message": "hi"}) is None

    def test_start_transaction_does_not_bind_scope(self, make_hub):
        hub = make_hub(traces_sample_rate=1)
        hub.start_transaction(name="dogpark")
        assert hub.scope.get_span() is None

    def test_configure_scope(self, make_hub):
        hub = make_hub(traces_sample_rate=1)
        transaction = hub.start_transaction(name="dogpark")
        hub.configure_scope(lambda scope: scope.set_span(transaction))
        assert hub.scope.get_transaction() is transaction

    def test_trace_headers(self, make_hub):
        hub = make_hub(traces_sample_rate=1)
        assert hub.trace_headers() == {}

        with hub.start_transaction(name="dogpark") as transaction:
            headers = hub.trace_headers()

        assert headers[TRACEPARENT_HEADER] == transaction.to_traceparent()
        assert headers[TRACESTATE_HEADER] == f"tracehub={transaction.tracestate}"

    def test_kwargs_applied_on_top_of_context(self, make_hub):
        hub = make_hub(traces_sample_rate=1)
        context = tracehub.TransactionContext(name="dogpark", op="task")
        transaction = hub.start_transaction(context, name="renamed")
        assert transaction.name == "renamed"
        assert transaction.op == "task"


class TestSessions:
    def test_session_lifecycle(self, make_hub, exporter):
        hub = make_hub(release="off.leash.park", environment="dogpark")
        session = hub.start_session(did="dog-42")
        assert hub.scope.get_session() is session

        hub.end_session()

        assert hub.scope.get_session() is None
        assert session.status is SessionStatus.EXITED
        assert session.init is False
        _, item_header, body = exporter.envelope_parts()
        assert item_header == {"type": "session"}
        assert body["did"] == "dog-42"
        assert body["attrs"]["release"] == "off.leash.park"

    def test_starting_session_ends_previous(self, make_hub, exporter):
        hub = make_hub()
        first = hub.start_session()
        hub.start_session()
        assert first.status is SessionStatus.EXITED
        assert len(exporter.requests) == 1

    def test_crashed_session_keeps_status(self, make_hub):
        hub = make_hub()
        session = hub.start_session()
        session.update(status=SessionStatus.CRASHED, errors=1)
        hub.end_session()
        assert session.status is SessionStatus.CRASHED


class TestContextBinding:
    def test_use_hub(self):
        hub = Hub()
        with use_hub(hub):
            assert get_current_hub() is hub
        assert get_current_hub() is not hub

    def test_default_hub_has_no_client(self):
        assert get_current_hub().client is None

    def test_nested_binding_restored(self):
        outer, inner = Hub(), Hub()
        with use_hub(outer):
            with use_hub(inner):
                assert get_current_hub() is inner
            assert get_current_hub() is outer

    def test_threads_do_not_share_binding(self):
        hub = Hub()
        seen = []
        with use_hub(hub):
            thread = threading.Thread(target=lambda: seen.append(get_current_hub()))
            thread.start()
            thread.join()
        assert seen[0] is not hub

    def test_module_level_helpers_use_current_hub(self, make_hub, exporter):
        hub = make_hub(traces_sample_rate=1)
        with use_hub(hub):
            transaction = tracehub.start_transaction(name="dogpark")
            tracehub.configure_scope(lambda scope: scope.set_span(transaction))
            transaction.finish()
            tracehub.capture_event({"message": "hi"})
        assert [r.type for r in exporter.requests] == ["transaction", "event"]


class TestInit:
    @pytest.fixture(autouse=True)
    def _isolate_config(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        for name in ("TRACEHUB_DSN", "TRACEHUB_TRACES_SAMPLE_RATE", "TRACEHUB_ENVIRONMENT", "TRACEHUB_RELEASE"):
            monkeypatch.delenv(name, raising=False)

    def test_init_binds_hub(self):
        exporter = RecordingExporter()
        ctx = contextvars.copy_context()

        hub = ctx.run(tracehub.init, dsn=DSN, traces_sample_rate=1, exporter=exporter)

        assert ctx.run(get_current_hub) is hub
        assert hub.client.options.traces_sample_rate == 1
        assert hub.client.exporter is exporter

    def test_init_reads_config_file(self, tmp_path):
        (tmp_path / "tracehub.toml").write_text(
            f'[tracing]\ndsn = "{DSN}"\ntraces_sample_rate = 0.5\nrelease = "off.leash.park"\n'
        )
        hub = contextvars.copy_context().run(tracehub.init)
        assert hub.client.options.release == "off.leash.park"
        assert hub.client.dsn.public_key == "publickey"

    def test_init_replaces_previous_binding(self):
        first_exporter, second_exporter = RecordingExporter(), RecordingExporter()

        def scenario():
            first = tracehub.init(dsn=DSN, exporter=first_exporter)
            second = tracehub.init(dsn=DSN, exporter=second_exporter)
            assert get_current_hub() is second
            assert first.context_token is None

            tracehub.shutdown()
            return first, second, get_current_hub()

        first, second, current = contextvars.copy_context().run(scenario)

        assert current is not first and current is not second
        assert current.client is None
        assert second.context_token is None
        assert second_exporter.shut_down is True
        assert first_exporter.shut_down is False

    def test_shutdown_leaves_use_hub_binding(self):
        hub = Hub()
        with use_hub(hub):
            tracehub.shutdown()
            assert get_current_hub() is hub

    def test_init_invalid_config(self):
        with pytest.raises(tracehub.ConfigError):
            contextvars.copy_context().run(tracehub.init, dsn="not a dsn")


class TestInstrumentation:
    def test_server_transaction_continues_trace(self, make_hub):
        upstream = make_hub(traces_sample_rate=1).start_transaction(name="upstream")
        headers = {}
        with use_hub(make_hub(traces_sample_rate=1)) as client_hub:
            client_hub.scope.set_span(upstream)
            inject_headers(headers)

        server_hub = make_hub(traces_sample_rate=0)
        transaction = start_server_transaction("GET /walks", headers, hub=server_hub)

        assert transaction.trace_id == upstream.trace_id
        assert transaction.parent_span_id == upstream.span_id
        assert transaction.sampled is True
        assert transaction.op == "http.server"
        assert transaction.tracestate == upstream.tracestate

    def test_server_transaction_without_headers_starts_trace(self, make_hub):
        transaction = start_server_transaction("GET /walks", {}, hub=make_hub(traces_sample_rate=1))
        assert transaction.parent_span_id is None
        assert transaction.name == "GET /walks"

    def test_request_passed_to_sampler(self, make_hub):
        calls = []
        hub = make_hub(traces_sampler=lambda ctx: calls.append(ctx) or 1)
        request = {"method": "GET", "url": "http://the.dog.park/walks", "headers": {}}

        start_server_transaction("GET /walks", {}, request=request, hub=hub)

        assert calls[0]["request"] == request

    def test_inject_headers_without_active_span(self):
        assert inject_headers({"accept": "*/*"}, hub=Hub()) == {"accept": "*/*"}

    def test_extract_parent_context_new_trace(self):
        context = extract_parent_context({}, name="dogpark")
        assert context.name == "dogpark"
        assert context.parent_sampled is None


class TestScope:
    def test_clone_is_independent(self):
        hub = Hub()
        transaction = hub.start_transaction(name="dogpark", sampled=True)
        hub.scope.set_span(transaction)

        clone = hub.scope.clone()
        clone.set_span(transaction.start_child(op="db"))

        assert hub.scope.get_span() is transaction
        assert clone.get_transaction() is transaction
