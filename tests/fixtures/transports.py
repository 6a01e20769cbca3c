"""Transport doubles implementing TransportClient."""

from typing import Any

from probe_listener.contracts.transport import MeasureRequest


class RecordingTransport:
    """Transport that connects immediately and records every request."""

    _name = "recording"

    def __init__(self, *, fail_query: bool = False) -> None:
        self._fail_query = fail_query
        self.options: dict[str, Any] | None = None
        self.requests: list[MeasureRequest] = []
        self.connect_calls = 0
        self.disconnect_calls = 0

    @property
    def name(self) -> str:
        return self._name

    def configure(self, options: dict[str, Any]) -> None:
        self.options = options

    def connect(self) -> None:
        self.connect_calls += 1

    def query(self, request: MeasureRequest) -> None:
        if self._fail_query:
            raise ConnectionError("Simulated query failure")
        self.requests.append(request)

    def disconnect(self) -> None:
        self.disconnect_calls += 1


class FlakyTransport(RecordingTransport):
    """Transport whose connect() fails a number of times before succeeding.

    Args:
        failures: Failed attempts before success; None fails forever
    """

    _name = "flaky"

    def __init__(self, failures: int | None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._failures = failures

    def connect(self) -> None:
        self.connect_calls += 1
        if self._failures is None or self.connect_calls <= self._failures:
            raise ConnectionRefusedError(f"Simulated connect failure #{self.connect_calls}")


class StubPayload:
    """Host payload exposing serialize()."""

    def __init__(self, serialized: Any) -> None:
        self._serialized = serialized
        self.serialize_calls = 0

    def serialize(self) -> Any:
        self.serialize_calls += 1
        return self._serialized


class BrokenPayload:
    """Host payload whose serialize() raises."""

    def serialize(self) -> Any:
        raise ValueError("cannot serialize")
