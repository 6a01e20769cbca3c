"""Exceptions raised by probe-listener.

Only configuration-time code raises these. The connect loop and the
dispatcher log failures instead of raising: telemetry delivery must never
fail the host operation that triggered it.
"""

from collections.abc import Sequence

from probe_listener.contracts.probes import ProbeDiagnostic


class ProbeListenerError(Exception):
    """Base class for probe-listener errors."""


class ProbeConfigurationError(ProbeListenerError):
    """Raised when fail-fast validation finds malformed probes.

    Attributes:
        diagnostics: Every diagnostic collected by the validator
    """

    def __init__(self, diagnostics: Sequence[ProbeDiagnostic]) -> None:
        self.diagnostics = tuple(diagnostics)
        details = "; ".join(str(d) for d in self.diagnostics)
        super().__init__(f"{len(self.diagnostics)} invalid probe(s): {details}")


class CollectorTransportError(ProbeListenerError):
    """Raised when a transport cannot be discovered or configured.

    Attributes:
        transport_name: Name of the transport that failed
        message: Human-readable error description
    """

    def __init__(self, transport_name: str, message: str) -> None:
        self.transport_name = transport_name
        self.message = message
        super().__init__(f"Transport '{transport_name}' failed: {message}")


class SettingsError(ProbeListenerError):
    """Raised when the settings file cannot be loaded."""
