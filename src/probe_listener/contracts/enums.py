"""Kinds and states used across subsystem boundaries."""

from enum import StrEnum


class ProbeKind(StrEnum):
    """Closed set of probe kinds.

    The value doubles as the handler name exposed to the host and as the
    ``action`` of measurement requests sent to the collector.
    """

    MONITOR = "monitor"
    COUNTER = "counter"
    WATCHER = "watcher"
    SAMPLER = "sampler"


# Kinds observing document/message content rather than bare occurrence counts.
# Only these attach a serialized payload to measurement requests.
CONTENT_KINDS: frozenset[ProbeKind] = frozenset({ProbeKind.WATCHER, ProbeKind.SAMPLER})


class ConnectionState(StrEnum):
    """Lifecycle of the collector connection.

    DISABLED (collector given up on) and CLOSED (shut down by the host) are
    terminal for the process lifetime.
    """

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    BACKOFF = "backoff"
    CONNECTED = "connected"
    DISABLED = "disabled"
    CLOSED = "closed"
