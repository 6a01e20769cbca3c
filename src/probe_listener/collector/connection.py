# src/probe_listener/collector/connection.py
"""CollectorConnection owns the lifecycle of the link to the remote collector.

State machine:

    UNINITIALIZED -> CONNECTING -> CONNECTED
                     CONNECTING -> BACKOFF -> CONNECTING -> ... -> DISABLED
    any state other than DISABLED -> CLOSED  (close())

Each failed connect attempt increments a consecutive error counter. Below
max_connection_errors a retry notice is logged and the attempt is repeated
after retry_backoff_seconds. When the counter reaches the maximum the
collector is declared unreachable: a terminal error is logged, the transport
is disconnected once and the connection becomes DISABLED for the rest of the
process. Dispatch against a disabled or closed connection is silently dropped.

Retry scheduling is delegated to tenacity. The backoff sleep waits on the
shutdown event, so close() interrupts it and no further attempt is made.

Thread Safety:
    connect() runs either inline or on the "collector-connect" thread started
    by start(). State transitions happen under _state_lock and are refused
    once close() has set the shutdown event, so a late attempt can never
    resurrect a closed connection. Host threads only read ``state`` and
    ``client``.
"""

import threading
from typing import Any

import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_fixed,
)

from probe_listener.contracts.enums import ConnectionState
from probe_listener.contracts.transport import TransportClient

logger = structlog.get_logger(__name__)

_TERMINAL_STATES = frozenset({ConnectionState.DISABLED, ConnectionState.CLOSED})


class CollectorConnection:
    """Bounded retry-then-give-up connection to the collector.

    Example:
        >>> connection = CollectorConnection(transport, collector_url="http://kdc:7512")
        >>> connection.start()  # returns immediately
        >>> connection.client.query(request)
        >>> connection.close()
    """

    def __init__(
        self,
        transport: TransportClient,
        *,
        collector_url: str,
        max_connection_errors: int = 10,
        retry_backoff_seconds: float = 1.0,
    ) -> None:
        """Initialize the connection without contacting the collector.

        Args:
            transport: Configured transport client
            collector_url: Collector address, used in log messages
            max_connection_errors: Consecutive failures before giving up (> 0)
            retry_backoff_seconds: Pause between attempts (>= 0)

        Raises:
            ValueError: If max_connection_errors < 1 or backoff is negative
        """
        if max_connection_errors < 1:
            raise ValueError(f"max_connection_errors must be >= 1, got {max_connection_errors}")
        if retry_backoff_seconds < 0:
            raise ValueError(f"retry_backoff_seconds must be >= 0, got {retry_backoff_seconds}")

        self._transport = transport
        self._collector_url = collector_url
        self._max_connection_errors = max_connection_errors
        self._retry_backoff_seconds = retry_backoff_seconds

        self._state = ConnectionState.UNINITIALIZED
        self._error_count = 0
        self._connect_in_progress = False
        self._transport_released = False

        self._state_lock = threading.Lock()
        self._shutdown_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def error_count(self) -> int:
        """Consecutive failed connection attempts."""
        return self._error_count

    @property
    def client(self) -> TransportClient | None:
        """Transport to send requests with, or None once disabled or closed.

        The transport is returned before the connection is established so
        that transports with auto-queue can buffer early measurements.
        """
        if self._state in _TERMINAL_STATES:
            return None
        return self._transport

    def start(self) -> None:
        """Run connect() on a background thread and return immediately."""
        with self._state_lock:
            if self._thread is not None or self._state is not ConnectionState.UNINITIALIZED:
                return
            self._thread = threading.Thread(
                target=self.connect,
                name="collector-connect",
                daemon=True,
            )
        self._thread.start()

    def connect(self) -> ConnectionState:
        """Connect to the collector, retrying up to max_connection_errors times.

        Only the first call does anything; later calls return the current
        state. Never raises for transport failures.

        Returns:
            CONNECTED, DISABLED, or CLOSED if close() was called meanwhile
        """
        with self._state_lock:
            if self._state is not ConnectionState.UNINITIALIZED:
                return self._state
            self._state = ConnectionState.CONNECTING
            self._connect_in_progress = True

        try:
            self._run_attempts()
        finally:
            with self._state_lock:
                self._connect_in_progress = False
                shutting_down = self._shutdown_event.is_set()
            # close() leaves the release to us while an attempt is in flight
            if shutting_down:
                self._release_transport()

        return self._state

    def _run_attempts(self) -> None:
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._max_connection_errors) | stop_when_event_set(self._shutdown_event),
                wait=wait_fixed(self._retry_backoff_seconds),
                sleep=self._backoff,
                retry=retry_if_exception_type(Exception),
                before_sleep=self._on_retry,
                reraise=False,
            ):
                if self._shutdown_event.is_set():
                    break
                with attempt:
                    try:
                        self._transport.connect()
                    except Exception:
                        self._error_count += 1
                        raise
        except RetryError as e:
            if not self._shutdown_event.is_set():
                self._give_up(e.last_attempt.exception())
            return

        if self._shutdown_event.is_set():
            logger.debug("Collector connection aborted by shutdown", collector=self._collector_url)
            return

        self._error_count = 0
        if self._transition(ConnectionState.CONNECTED):
            logger.info("Successfully connected to collector", collector=self._collector_url)

    def _on_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        logger.info(
            "Trying to connect to collector",
            collector=self._collector_url,
            attempt=retry_state.attempt_number,
            max_attempts=self._max_connection_errors,
            error=str(error),
        )
        self._transition(ConnectionState.BACKOFF)

    def _backoff(self, seconds: float) -> None:
        self._shutdown_event.wait(seconds)
        self._transition(ConnectionState.CONNECTING)

    def _transition(self, state: ConnectionState) -> bool:
        """Move to ``state`` unless close() got there first."""
        with self._state_lock:
            if self._shutdown_event.is_set():
                return False
            self._state = state
            return True

    def _give_up(self, error: BaseException | None) -> None:
        if not self._transition(ConnectionState.DISABLED):
            return
        logger.error(
            "Collector seems to be down. No measures will be sent to probes.",
            collector=self._collector_url,
            consecutive_errors=self._error_count,
            error=str(error),
        )
        self._release_transport()

    def _release_transport(self) -> None:
        with self._state_lock:
            if self._transport_released:
                return
            self._transport_released = True
        try:
            self._transport.disconnect()
        except Exception as e:
            logger.warning("Transport disconnect failed", collector=self._collector_url, error=str(e))

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of the connection for monitoring."""
        return {
            "state": self._state.value,
            "consecutive_errors": self._error_count,
            "max_connection_errors": self._max_connection_errors,
            "collector": self._collector_url,
        }

    def wait(self, timeout: float | None = None) -> ConnectionState:
        """Block until the background connect attempt finishes or timeout expires."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
        return self._state

    def close(self) -> None:
        """Stop retrying, move to CLOSED and disconnect the transport.

        Idempotent. A DISABLED connection stays DISABLED. The transport is
        disconnected at most once over the lifetime of the connection, and
        never before an in-flight connect attempt has returned.
        """
        with self._state_lock:
            self._shutdown_event.set()
            if self._state is not ConnectionState.DISABLED:
                self._state = ConnectionState.CLOSED

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)
            if thread.is_alive():
                logger.error("Collector connect thread did not exit within timeout")

        with self._state_lock:
            in_progress = self._connect_in_progress
        if in_progress:
            logger.debug("Connect attempt in flight, transport released when it returns")
            return
        self._release_transport()
