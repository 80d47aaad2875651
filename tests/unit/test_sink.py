"""Tests for JsonHttpSink against a mock HTTP endpoint."""

from unittest.mock import MagicMock

import httpx
import pytest

from json_http_sink import SINK_TYPE, ConfigurationError, JsonHttpSink, Level, register
from mocks import wait_for


class TestConstruction:
    """Tests for building sinks from configuration."""

    def test_sink_type(self, make_sink):
        assert make_sink().sink_type == SINK_TYPE == "JSON_HTTP"

    def test_missing_url_raises_before_anything_starts(self):
        with pytest.raises(ConfigurationError):
            JsonHttpSink.from_config({"type": "JSON_HTTP"})

    def test_target_url_includes_endpoint_path(self, make_sink):
        sink = make_sink(url="https://logs.example.com/", endpointPath="/api/logs")
        assert sink.url == "https://logs.example.com/api/logs"

    def test_headers_are_derived_from_config(self, make_sink):
        sink = make_sink(authToken="sk-123456", headers={"X-Environment": "production"})

        assert sink.headers == {
            "X-Environment": "production",
            "Authorization": "Bearer sk-123456",
            "Content-Type": "application/json",
        }

    def test_disabled_in_config(self, make_sink):
        assert make_sink(enabled=False).enabled is False

    def test_repr(self, make_sink):
        text = repr(make_sink(batchSize=7))
        assert "https://logs.example.com" in text
        assert "batch_size=7" in text


class TestDelivery:
    """Tests for end-to-end delivery through the sink."""

    def test_size_trigger_posts_batch(self, make_sink, make_record, endpoint):
        """Two records with batchSize=2 produce one POST with both."""
        sink = make_sink(batchSize=2, authToken="sk-123456")
        sink.append(make_record("one"))
        sink.append(make_record("two"))

        assert wait_for(lambda: endpoint.request_count == 1)
        request = endpoint.requests[0]
        assert request.headers["Authorization"] == "Bearer sk-123456"
        assert request.headers["Content-Type"] == "application/json"

        payload = endpoint.payloads()[0]
        assert payload["count"] == 2
        assert [log["message"] for log in payload["logs"]] == ["one", "two"]
        assert payload["metadata"]["sessionId"] == "session-1"

    def test_retries_server_error(self, make_sink, make_record, endpoint):
        """A 503 followed by 200 delivers the batch on the second attempt."""
        endpoint.script(503, 200)
        sink = make_sink()
        sink.append(make_record())

        assert sink.flush() is True
        assert endpoint.request_count == 2
        stats = sink.get_statistics()
        assert stats["successfulSends"] == 1
        assert stats["failedSends"] == 0

    def test_retries_transport_failure(self, make_sink, make_record, endpoint):
        endpoint.script(httpx.ConnectError, 200)
        sink = make_sink()
        sink.append(make_record())

        assert sink.flush() is True
        assert endpoint.request_count == 2

    def test_exhausted_retries_requeue_batch(self, make_sink, make_record, endpoint):
        """After maxRetries+1 failures the batch waits in the buffer."""
        endpoint.default_status = 500
        sink = make_sink(maxRetries=2)
        sink.append(make_record())

        assert sink.flush() is False
        assert endpoint.request_count == 3
        stats = sink.get_statistics()
        assert stats["failedSends"] == 1
        assert stats["bufferSize"] == 1

        endpoint.default_status = 200
        assert sink.flush() is True
        assert sink.get_statistics()["bufferSize"] == 0

    def test_unauthorized_batch_is_dropped(self, make_sink, make_record, endpoint):
        """A 401 is not retried and the batch is not requeued."""
        endpoint.script(401)
        sink = make_sink()
        sink.append(make_record())

        assert sink.flush() is False
        assert endpoint.request_count == 1
        stats = sink.get_statistics()
        assert stats["failedSends"] == 1
        assert stats["bufferSize"] == 0

    def test_compressed_batches(self, make_sink, make_record, endpoint):
        sink = make_sink(compressBatch=True)
        sink.append(make_record("squeezed"))
        sink.flush()

        assert endpoint.requests[0].headers["Content-Encoding"] == "gzip"
        assert endpoint.messages() == ["squeezed"]

    def test_last_send_time_recorded(self, make_sink, make_record):
        sink = make_sink()
        assert sink.get_statistics()["lastSendTime"] is None

        sink.append(make_record())
        sink.flush()

        assert sink.statistics.last_send_time is not None
        assert sink.get_statistics()["lastSendTime"] == sink.statistics.last_send_time.isoformat()


class TestEnabledFlag:
    """Tests for runtime enable/disable."""

    def test_disabled_sink_ignores_appends(self, make_sink, make_record, endpoint):
        sink = make_sink(enabled=False)
        sink.append(make_record())

        assert sink.get_statistics()["bufferSize"] == 0
        assert sink.flush() is True
        assert endpoint.request_count == 0

    def test_toggle_at_runtime(self, make_sink, make_record):
        sink = make_sink()
        sink.enabled = False
        sink.append(make_record())
        assert sink.get_statistics()["bufferSize"] == 0

        sink.enabled = True
        sink.append(make_record())
        assert sink.get_statistics()["bufferSize"] == 1


class TestLifecycle:
    """Tests for flush and dispose through the sink."""

    def test_dispose_sends_remaining_records(self, make_sink, make_record, endpoint):
        sink = make_sink()
        sink.append(make_record("final"))

        sink.dispose()

        assert endpoint.messages() == ["final"]

    def test_append_after_dispose_is_noop(self, make_sink, make_record, endpoint):
        sink = make_sink()
        sink.dispose()

        sink.append(make_record())
        sink.flush()

        assert endpoint.request_count == 0
        assert sink.get_statistics()["bufferSize"] == 0

    def test_append_never_raises(self, make_sink, make_record):
        """Internal failures while buffering are logged, not raised."""
        sink = make_sink()
        sink._scheduler.append = MagicMock(side_effect=RuntimeError("broken"))

        sink.append(make_record())

    def test_test_mode_makes_no_requests(self, make_sink, make_record, endpoint):
        """Test mode records a success per cut without touching the network."""
        sink = make_sink(test=True, batchSize=2)
        sink.append(make_record())
        sink.append(make_record())

        assert endpoint.request_count == 0
        assert sink.get_statistics()["successfulSends"] == 1


class TestDeepCopy:
    """Tests for create_deep_copy."""

    def test_copy_has_same_configuration(self, make_sink):
        sink = make_sink(endpointPath="ingest", authToken="sk-1")
        sink.enabled = False

        copy = sink.create_deep_copy()
        try:
            assert copy is not sink
            assert copy.url == sink.url
            assert copy.headers == sink.headers
            assert copy.enabled is False
            assert copy.config == sink.config
        finally:
            copy.dispose()

    def test_copy_headers_are_independent(self, make_sink, make_record, endpoint):
        """Header changes on the copy affect only the copy's requests."""
        sink = make_sink()
        copy = sink.create_deep_copy()
        try:
            copy.headers["X-Copy"] = "yes"
            assert "X-Copy" not in sink.headers

            copy.append(make_record("from copy"))
            copy.flush()
            sink.append(make_record("from original"))
            sink.flush()
        finally:
            copy.dispose()

        by_message = {
            request.headers.get("X-Copy"): log["message"]
            for request, payload in zip(endpoint.requests, endpoint.payloads(), strict=True)
            for log in payload["logs"]
        }
        assert by_message == {"yes": "from copy", None: "from original"}

    def test_copy_never_reuses_constructor_transport(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        sink = JsonHttpSink.from_config({"url": "https://logs.example.com"}, transport=transport)
        copy = sink.create_deep_copy()
        try:
            copy_transport = copy._scheduler.retry.client._client._transport
            assert sink._scheduler.retry.client._client._transport is transport
            assert copy_transport is not transport
        finally:
            copy.dispose()
            sink.dispose()

    def test_original_delivers_after_copy_disposed(self, make_sink, make_record, endpoint):
        """Each sink gets a fresh transport from the factory."""
        sink = make_sink()
        copy = sink.create_deep_copy()
        assert copy._scheduler.retry.client._client._transport is not (
            sink._scheduler.retry.client._client._transport
        )
        copy.dispose()

        sink.append(make_record("still shipping"))

        assert sink.flush() is True
        assert endpoint.messages() == ["still shipping"]

    def test_copy_has_own_buffer(self, make_sink, make_record):
        sink = make_sink()
        copy = sink.create_deep_copy()
        try:
            sink.append(make_record())
            assert copy.get_statistics()["bufferSize"] == 0
        finally:
            copy.dispose()


class TestRegister:
    """Tests for framework registration."""

    def test_register_installs_factory(self):
        registry = MagicMock()

        register(registry)

        registry.register.assert_called_once_with("JSON_HTTP", JsonHttpSink.from_config)

    def test_registered_factory_builds_sinks(self):
        factories = {}

        class Registry:
            def register(self, name, factory):
                factories[name] = factory

        register(Registry())
        sink = factories["JSON_HTTP"]({"url": "https://logs.example.com", "level": "ERROR"}, test=True)
        try:
            assert isinstance(sink, JsonHttpSink)
            assert sink.config.level == Level.ERROR
        finally:
            sink.dispose()
