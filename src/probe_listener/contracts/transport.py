"""Contracts between the dispatcher and collector transports.

Transports ship measurement requests to the remote collector. They are
discovered via pluggy hooks and configured from collector settings.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class MeasureRequest:
    """A single measurement addressed to the collector's ingestion channel.

    Attributes:
        destination: Collector channel, by convention ``<plugin-id>/measure``
        action: Probe kind the measurement belongs to
        body: ``{"event": ...}`` plus ``payload`` for content probes
    """

    destination: str
    action: str
    body: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of the request."""
        return {
            "destination": self.destination,
            "action": self.action,
            "body": dict(self.body),
        }


@runtime_checkable
class SerializablePayload(Protocol):
    """Triggering payload of content probes.

    Serialization is delegated to the payload itself; the result must be
    safe to hand to the transport (JSON-compatible for built-in transports).
    """

    def serialize(self) -> Any: ...


@runtime_checkable
class TransportClient(Protocol):
    """Opaque client reaching the remote collector.

    Lifecycle:
        1. Discovery: probe_listener_get_transports hook returns transport classes
        2. Instantiation and configure() with collector options
        3. connect() - raises on failure; retried by CollectorConnection
        4. query() for each measurement
        5. disconnect() at shutdown or when the collector is given up on

    Error handling:
        - configure() MUST raise CollectorTransportError on invalid options
        - connect() and query() may raise; callers log and absorb failures
        - disconnect() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Transport name used in ``collector.transport`` settings."""
        ...

    def configure(self, options: dict[str, Any]) -> None: ...

    def connect(self) -> None: ...

    def query(self, request: MeasureRequest) -> Any: ...

    def disconnect(self) -> None: ...
