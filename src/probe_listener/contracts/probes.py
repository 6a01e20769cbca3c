# src/probe_listener/contracts/probes.py
"""Validated probe declarations.

Probes are built once from raw configuration by the validator and are
immutable afterwards. Each kind is its own frozen dataclass; together they
form the ``Probe`` tagged union consumed by the hook builder and the
listener. Use ``match`` on the concrete class to branch on the kind.

Structural events:
    Watcher and sampler probes observe content flowing through the host
    rather than named events, so they are bound to a fixed set of
    document/message creation events (STRUCTURAL_EVENTS).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from probe_listener.contracts.enums import ProbeKind

STRUCTURAL_EVENTS: tuple[str, ...] = (
    "realtime:beforePublish",
    "document:beforeCreate",
    "document:beforeCreateOrReplace",
)


def _empty_options() -> Mapping[str, Any]:
    return MappingProxyType({})


def freeze_options(value: Any) -> Any:
    """Recursively turn lists into tuples and dicts into read-only mappings."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_options(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_options(item) for item in value)
    return value


@dataclass(frozen=True, slots=True)
class MonitorProbe:
    """Counts occurrences of each event listed in ``hooks``."""

    kind: ClassVar[ProbeKind] = ProbeKind.MONITOR

    name: str
    hooks: tuple[str, ...]

    def trigger_events(self) -> tuple[str, ...]:
        return self.hooks


@dataclass(frozen=True, slots=True)
class CounterProbe:
    """Counter moved up by ``increasers`` events and down by ``decreasers``.

    The two event lists are disjoint and at least one is non-empty.
    """

    kind: ClassVar[ProbeKind] = ProbeKind.COUNTER

    name: str
    increasers: tuple[str, ...] = ()
    decreasers: tuple[str, ...] = ()

    def trigger_events(self) -> tuple[str, ...]:
        return self.increasers + self.decreasers


@dataclass(frozen=True, slots=True)
class WatcherProbe:
    """Watches documents/messages created in an index and collection.

    ``options`` holds the remaining declaration fields (filter, collects,
    ...). They are opaque here and only interpreted by the collector.
    """

    kind: ClassVar[ProbeKind] = ProbeKind.WATCHER

    name: str
    index: str
    collection: str
    options: Mapping[str, Any] = field(default_factory=_empty_options)

    def trigger_events(self) -> tuple[str, ...]:
        return STRUCTURAL_EVENTS


@dataclass(frozen=True, slots=True)
class SamplerProbe:
    """Samples documents/messages created in an index and collection.

    Sampling parameters (sampleSize, interval, mapping, ...) live in
    ``options`` and are consumed by the collector only.
    """

    kind: ClassVar[ProbeKind] = ProbeKind.SAMPLER

    name: str
    index: str
    collection: str
    options: Mapping[str, Any] = field(default_factory=_empty_options)

    def trigger_events(self) -> tuple[str, ...]:
        return STRUCTURAL_EVENTS


Probe = MonitorProbe | CounterProbe | WatcherProbe | SamplerProbe


@dataclass(frozen=True, slots=True)
class ProbeDiagnostic:
    """One configuration error, keyed by the offending probe's name."""

    probe_name: str
    message: str

    def __str__(self) -> str:
        return f"[probe: {self.probe_name}] {self.message}"
