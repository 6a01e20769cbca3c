# tests/unit/collector/test_transports.py
"""Tests for the built-in http and console transports."""

import json
import logging
from collections.abc import Iterator

import httpx
import pytest
import respx
import structlog

from probe_listener.collector.transports import ConsoleTransport, HttpCollectorTransport
from probe_listener.contracts import CollectorTransportError, MeasureRequest, TransportClient
from probe_listener.core.logging import configure_logging

BASE_URL = "http://kdc:7512"
MONITOR_ROUTE = f"{BASE_URL}/_plugin/kuzzle-plugin-probe/measure/monitor"


def _request(action: str = "monitor", **body) -> MeasureRequest:
    return MeasureRequest(destination="kuzzle-plugin-probe/measure", action=action, body={"event": "a", **body})


@pytest.fixture
def http_transport() -> Iterator[HttpCollectorTransport]:
    transport = HttpCollectorTransport()
    transport.configure({"host": "kdc", "port": 7512})
    yield transport
    transport.disconnect()


class TestHttpConfigure:
    def test_implements_protocol(self):
        assert isinstance(HttpCollectorTransport(), TransportClient)
        assert HttpCollectorTransport().name == "http"

    @pytest.mark.parametrize(
        ("options", "message"),
        [
            ({}, "'host'"),
            ({"host": ""}, "'host'"),
            ({"host": "kdc", "port": "7512"}, "'port'"),
            ({"host": "kdc", "port": 0}, "'port'"),
            ({"host": "kdc", "scheme": "ftp"}, "Invalid scheme"),
            ({"host": "kdc", "timeout": 0}, "'timeout'"),
            ({"host": "kdc", "timeout": True}, "'timeout'"),
            ({"host": "kdc", "auto_queue": "yes"}, "'auto_queue'"),
            ({"host": "kdc", "queue_size": 0}, "'queue_size'"),
        ],
    )
    def test_invalid_options_raise(self, options, message):
        with pytest.raises(CollectorTransportError) as exc_info:
            HttpCollectorTransport().configure(options)
        assert exc_info.value.transport_name == "http"
        assert message in exc_info.value.message


class TestHttpLifecycle:
    @respx.mock
    def test_connect_checks_collector(self, http_transport):
        route = respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(200, json={"status": "ok"}))

        http_transport.connect()

        assert route.called
        assert http_transport.connected

    @respx.mock
    def test_connect_failure_raises(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(httpx.ConnectError):
            http_transport.connect()
        assert not http_transport.connected

    @respx.mock
    def test_connect_error_status_raises(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            http_transport.connect()

    @respx.mock
    def test_query_posts_body_to_plugin_route(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(200))
        route = respx.post(f"{BASE_URL}/_plugin/kuzzle-plugin-probe/measure/watcher").mock(
            return_value=httpx.Response(200, json={"result": True})
        )
        http_transport.connect()

        response = http_transport.query(_request("watcher", payload={"_id": "doc1"}))

        assert response.status_code == 200
        assert json.loads(route.calls.last.request.content) == {"event": "a", "payload": {"_id": "doc1"}}

    @respx.mock
    def test_query_error_status_raises(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(200))
        respx.post(MONITOR_ROUTE).mock(return_value=httpx.Response(500))
        http_transport.connect()

        with pytest.raises(httpx.HTTPStatusError):
            http_transport.query(_request())

    @respx.mock
    def test_requests_queued_until_connected_then_replayed(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(200))
        route = respx.post(MONITOR_ROUTE).mock(return_value=httpx.Response(200))

        assert http_transport.query(_request()) is None
        assert http_transport.query(_request()) is None
        assert http_transport.queued == 2
        assert not route.called

        http_transport.connect()

        assert route.call_count == 2
        assert http_transport.queued == 0

    @respx.mock
    def test_replay_failure_does_not_fail_connect(self, http_transport):
        respx.get(f"{BASE_URL}/").mock(return_value=httpx.Response(200))
        respx.post(MONITOR_ROUTE).mock(return_value=httpx.Response(500))
        http_transport.query(_request())

        http_transport.connect()

        assert http_transport.connected

    def test_queue_drops_oldest_when_full(self):
        transport = HttpCollectorTransport()
        transport.configure({"host": "kdc", "queue_size": 2})
        for i in range(3):
            transport.query(_request(n=i))
        assert transport.queued == 2

    def test_without_auto_queue_requests_are_dropped(self):
        transport = HttpCollectorTransport()
        transport.configure({"host": "kdc", "auto_queue": False})

        assert transport.query(_request()) is None
        assert transport.queued == 0

    def test_requests_issued_during_replay_follow_queued_ones(self):
        sent: list[str] = []
        holder: dict[str, HttpCollectorTransport] = {}

        def _measure(event: str) -> MeasureRequest:
            return MeasureRequest(destination="kuzzle-plugin-probe/measure", action="monitor", body={"event": event})

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                event = json.loads(request.content)["event"]
                sent.append(event)
                if event == "queued-1":
                    # A host thread firing while the queue is being replayed
                    assert holder["transport"].query(_measure("live")) is None
            return httpx.Response(200)

        transport = HttpCollectorTransport(http_transport=httpx.MockTransport(handler))
        holder["transport"] = transport
        transport.configure({"host": "kdc"})
        transport.query(_measure("queued-1"))
        transport.query(_measure("queued-2"))

        transport.connect()
        transport.query(_measure("after"))
        transport.disconnect()

        assert sent == ["queued-1", "queued-2", "live", "after"]
        assert transport.queued == 0

    def test_injected_http_transport(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        transport = HttpCollectorTransport(http_transport=httpx.MockTransport(handler))
        transport.configure({"host": "collector", "port": 8080, "scheme": "https"})
        transport.connect()
        transport.query(_request("counter"))
        transport.disconnect()

        assert [str(r.url) for r in seen] == [
            "https://collector:8080/",
            "https://collector:8080/_plugin/kuzzle-plugin-probe/measure/counter",
        ]

    def test_disconnect_is_idempotent_and_requeues(self):
        transport = HttpCollectorTransport(http_transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport.configure({"host": "kdc"})
        transport.connect()

        transport.disconnect()
        transport.disconnect()

        assert not transport.connected
        transport.query(_request())
        assert transport.queued == 1


class TestConsoleTransport:
    @pytest.fixture(autouse=True)
    def _logs_to_stderr(self) -> Iterator[None]:
        """Keep log lines out of the stdout stream under test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        configure_logging(level="WARNING")
        yield
        root.handlers = handlers
        root.setLevel(level)
        structlog.reset_defaults()

    def test_json_output(self, capsys):
        transport = ConsoleTransport()
        transport.configure({})
        transport.connect()
        transport.query(_request("sampler", payload={"x": 1}))

        line = capsys.readouterr().out.strip()
        assert json.loads(line) == {
            "destination": "kuzzle-plugin-probe/measure",
            "action": "sampler",
            "body": {"event": "a", "payload": {"x": 1}},
        }

    def test_pretty_output_to_stderr(self, capsys):
        transport = ConsoleTransport()
        transport.configure({"format": "pretty", "output": "stderr"})
        transport.query(_request())
        transport.disconnect()

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.strip() == "kuzzle-plugin-probe/measure monitor event=a"

    def test_ignores_collector_address_options(self):
        ConsoleTransport().configure({"host": "kdc", "port": 7512, "auto_queue": True})

    @pytest.mark.parametrize(
        ("options", "message"),
        [
            ({"format": "xml"}, "Invalid format"),
            ({"format": 1}, "'format' must be a string"),
            ({"output": "file"}, "Invalid output"),
            ({"output": None}, "'output' must be a string"),
        ],
    )
    def test_invalid_options_raise(self, options, message):
        with pytest.raises(CollectorTransportError, match=message):
            ConsoleTransport().configure(options)
