"""Shared contracts: probe types, transport protocols, enums and errors.

This package is a leaf: it imports nothing else from probe_listener.
"""

from probe_listener.contracts.enums import CONTENT_KINDS, ConnectionState, ProbeKind
from probe_listener.contracts.errors import (
    CollectorTransportError,
    ProbeConfigurationError,
    ProbeListenerError,
    SettingsError,
)
from probe_listener.contracts.probes import (
    STRUCTURAL_EVENTS,
    CounterProbe,
    MonitorProbe,
    Probe,
    ProbeDiagnostic,
    SamplerProbe,
    WatcherProbe,
)
from probe_listener.contracts.transport import MeasureRequest, SerializablePayload, TransportClient

__all__ = [
    "CONTENT_KINDS",
    "STRUCTURAL_EVENTS",
    "CollectorTransportError",
    "ConnectionState",
    "CounterProbe",
    "MeasureRequest",
    "MonitorProbe",
    "Probe",
    "ProbeConfigurationError",
    "ProbeDiagnostic",
    "ProbeKind",
    "ProbeListenerError",
    "SamplerProbe",
    "SerializablePayload",
    "SettingsError",
    "TransportClient",
    "WatcherProbe",
]
