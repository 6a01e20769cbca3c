# src/probe_listener/collector/dispatcher.py
"""MeasureDispatcher turns fired events into collector requests.

One request is sent per (event, probe kind) pair:

    destination: <plugin-id>/measure
    action:      <probe kind>
    body:        {"event": <event>}                      monitor, counter
                 {"event": <event>, "payload": <...>}    watcher, sampler

Dispatch is fire-and-forget. Failures (payload serialization included) are
logged and counted, never raised, never retried: failing to record a
measurement must not disrupt the host operation that fired the event.
"""

import threading
from typing import Any

import structlog

from probe_listener.collector.connection import CollectorConnection
from probe_listener.contracts.enums import CONTENT_KINDS, ProbeKind
from probe_listener.contracts.transport import MeasureRequest

logger = structlog.get_logger(__name__)


class MeasureDispatcher:
    """Build and send measurement requests over the collector connection.

    Thread Safety:
        dispatch() may be called from any host thread. Counters are guarded
        by a lock; nothing else is mutated.
    """

    def __init__(self, connection: CollectorConnection, *, plugin_id: str) -> None:
        self._connection = connection
        self._destination = f"{plugin_id}/measure"

        self._metrics_lock = threading.Lock()
        self._sent = 0
        self._failed = 0
        self._dropped = 0

    @property
    def destination(self) -> str:
        return self._destination

    def build_request(self, kind: ProbeKind, event: str, payload: Any = None) -> MeasureRequest:
        """Build the request for one probe kind.

        Raises:
            Exception: Whatever the payload's serialize() raises, or
                AttributeError if a content payload cannot be serialized
        """
        body: dict[str, Any] = {"event": event}
        if kind in CONTENT_KINDS and payload is not None:
            body["payload"] = payload.serialize()
        return MeasureRequest(destination=self._destination, action=kind.value, body=body)

    def dispatch(self, kind: ProbeKind, event: str, payload: Any = None) -> None:
        """Send one measurement. Never raises."""
        client = self._connection.client
        if client is None:
            # Collector declared unreachable: drop silently
            with self._metrics_lock:
                self._dropped += 1
            logger.debug("Collector unavailable, measure dropped", probe_kind=kind.value, hook_event=event)
            return

        try:
            request = self.build_request(kind, event, payload)
            client.query(request)
        except Exception as e:
            with self._metrics_lock:
                self._failed += 1
            logger.error(
                "Failed to send measure",
                probe_kind=kind.value,
                hook_event=event,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        with self._metrics_lock:
            self._sent += 1
        logger.debug("Measure sent", probe_kind=kind.value, hook_event=event)

    @property
    def health_metrics(self) -> dict[str, int]:
        with self._metrics_lock:
            return {
                "measures_sent": self._sent,
                "measures_failed": self._failed,
                "measures_dropped": self._dropped,
            }
