# src/probe_listener/collector/transports/http.py
"""HTTP transport to the remote collector.

Measurements are POSTed as JSON to the collector's plugin route:

    POST {scheme}://{host}:{port}/_plugin/{destination}/{action}
    {"event": "...", "payload": ...}

connect() probes the collector root and raises on any failure, leaving the
retry policy to CollectorConnection. With auto_queue enabled, measurements
issued before the first successful connect are buffered and replayed in FIFO
order once connected, ahead of anything issued during the replay; otherwise
they are dropped.
"""

from __future__ import annotations

import threading
from typing import Any

import httpx
import structlog

from probe_listener.collector.buffer import RequestBuffer
from probe_listener.contracts.errors import CollectorTransportError
from probe_listener.contracts.transport import MeasureRequest

logger = structlog.get_logger(__name__)

_VALID_SCHEMES: frozenset[str] = frozenset({"http", "https"})


class HttpCollectorTransport:
    """Send measurements to the collector over HTTP with httpx.

    Configuration options:
        host: Collector hostname (required)
        port: Collector port (default 7512)
        scheme: "http" (default) or "https"
        timeout: Per-request timeout in seconds (default 5.0)
        auto_queue: Buffer requests until connected (default True)
        queue_size: Maximum buffered requests (default 1000)

    Thread Safety:
        connect() runs on the connection thread while query() runs on host
        threads. Connection state and the queue are guarded by a lock; HTTP
        calls happen outside it.
    """

    _name = "http"

    def __init__(self, http_transport: httpx.BaseTransport | None = None) -> None:
        """Initialize unconfigured transport.

        Args:
            http_transport: Optional httpx transport, used to stub the network
        """
        self._http_transport = http_transport
        self._base_url = "http://localhost:7512"
        self._timeout = 5.0
        self._auto_queue = True
        self._queue = RequestBuffer()
        self._client: httpx.Client | None = None
        self._connected = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def queued(self) -> int:
        """Number of measurements waiting for the connection."""
        return len(self._queue)

    def configure(self, options: dict[str, Any]) -> None:
        """Configure from collector options.

        Raises:
            CollectorTransportError: If an option has the wrong type or value
        """
        host = options.get("host")
        if not isinstance(host, str) or not host:
            raise CollectorTransportError(self._name, f"'host' must be a non-empty string, got {host!r}")

        port = options.get("port", 7512)
        if type(port) is not int or not 0 < port < 65536:
            raise CollectorTransportError(self._name, f"'port' must be an integer in 1-65535, got {port!r}")

        scheme = options.get("scheme", "http")
        if scheme not in _VALID_SCHEMES:
            raise CollectorTransportError(
                self._name,
                f"Invalid scheme {scheme!r}. Must be one of: {', '.join(sorted(_VALID_SCHEMES))}",
            )

        timeout = options.get("timeout", 5.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise CollectorTransportError(self._name, f"'timeout' must be a positive number, got {timeout!r}")

        auto_queue = options.get("auto_queue", True)
        if not isinstance(auto_queue, bool):
            raise CollectorTransportError(self._name, f"'auto_queue' must be a boolean, got {auto_queue!r}")

        queue_size = options.get("queue_size", 1000)
        if type(queue_size) is not int or queue_size < 1:
            raise CollectorTransportError(self._name, f"'queue_size' must be a positive integer, got {queue_size!r}")

        self._base_url = f"{scheme}://{host}:{port}"
        self._timeout = float(timeout)
        self._auto_queue = auto_queue
        self._queue = RequestBuffer(max_size=queue_size)

        logger.debug(
            "HTTP transport configured",
            base_url=self._base_url,
            auto_queue=self._auto_queue,
            queue_size=queue_size,
        )

    def connect(self) -> None:
        """Check the collector is reachable, then replay queued requests.

        Raises:
            httpx.HTTPError: If the collector cannot be reached or answers
                with an error status
        """
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._http_transport,
                )
            client = self._client

        response = client.get("/")
        response.raise_for_status()

        # Drain until empty before publishing _connected: queries racing the
        # replay keep queueing behind it, so FIFO order holds
        while True:
            with self._lock:
                pending = self._queue.drain()
                if not pending:
                    self._connected = True
                    break
            logger.info("Replaying queued measurements", count=len(pending))
            for request in pending:
                try:
                    self._post(client, request)
                except httpx.HTTPError as e:
                    logger.warning(
                        "Failed to replay queued measurement",
                        action=request.action,
                        hook_event=request.body.get("event"),
                        error=str(e),
                    )

    def query(self, request: MeasureRequest) -> httpx.Response | None:
        """Send one measurement, or queue it while not connected.

        Returns:
            The collector response, or None if the request was queued or
            dropped.

        Raises:
            httpx.HTTPError: On network failure or error status
        """
        with self._lock:
            client = self._client if self._connected else None
            if client is None:
                if self._auto_queue:
                    self._queue.append(request)
                else:
                    logger.debug("Collector not connected, measurement dropped", action=request.action)
                return None

        return self._post(client, request)

    def disconnect(self) -> None:
        """Close the HTTP client. Safe to call repeatedly."""
        with self._lock:
            client = self._client
            self._client = None
            self._connected = False
        if client is not None:
            client.close()

    @staticmethod
    def _post(client: httpx.Client, request: MeasureRequest) -> httpx.Response:
        response = client.post(f"/_plugin/{request.destination}/{request.action}", json=dict(request.body))
        response.raise_for_status()
        return response
