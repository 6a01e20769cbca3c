# src/probe_listener/probes/validation.py
"""Probe configuration validation.

Turns the raw ``probes`` mapping from settings into typed Probe objects.
Validation is total: a malformed declaration produces a ProbeDiagnostic and
is left out, while well-formed probes are still admitted. Callers wanting
fail-fast behaviour call ValidationResult.raise_if_invalid().

Rules are checked in a fixed order and only the first violation of each
probe is reported, so every rejected probe yields exactly one diagnostic.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog

from probe_listener.contracts.enums import ProbeKind
from probe_listener.contracts.errors import ProbeConfigurationError
from probe_listener.contracts.probes import (
    CounterProbe,
    MonitorProbe,
    Probe,
    ProbeDiagnostic,
    SamplerProbe,
    WatcherProbe,
    freeze_options,
)

logger = structlog.get_logger(__name__)

# Older declarations use "type" instead of "kind".
_KIND_KEYS: tuple[str, ...] = ("kind", "type")

# Keys consumed by the validator; everything else on watcher/sampler
# declarations is carried through as opaque options.
_CONTENT_PROBE_KEYS = frozenset({"kind", "type", "name", "index", "collection"})


class _InvalidProbe(Exception):
    """Internal signal carrying the diagnostic message for one probe."""


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validate_probes().

    Attributes:
        probes: Valid probes keyed by name, in declaration order
        diagnostics: One entry per rejected probe, in declaration order
    """

    probes: Mapping[str, Probe] = field(default_factory=dict)
    diagnostics: tuple[ProbeDiagnostic, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.diagnostics

    def raise_if_invalid(self) -> None:
        """Raise ProbeConfigurationError if any probe was rejected."""
        if self.diagnostics:
            raise ProbeConfigurationError(self.diagnostics)


def validate_probes(raw_probes: Mapping[str, Any] | None) -> ValidationResult:
    """Validate raw probe declarations.

    The input is deep-copied first and never mutated. Each declaration's
    mapping key becomes the probe's ``name``.

    Args:
        raw_probes: Mapping of probe name to declaration (may be None or empty)

    Returns:
        ValidationResult with admitted probes and collected diagnostics
    """
    if not raw_probes:
        return ValidationResult()

    declarations = copy.deepcopy(dict(raw_probes))
    probes: dict[str, Probe] = {}
    diagnostics: list[ProbeDiagnostic] = []

    for name, declaration in declarations.items():
        name = str(name)
        try:
            probes[name] = _build_probe(name, declaration)
        except _InvalidProbe as e:
            diagnostic = ProbeDiagnostic(probe_name=name, message=str(e))
            diagnostics.append(diagnostic)
            logger.error("Invalid probe configuration", probe=name, error=diagnostic.message)

    return ValidationResult(probes=MappingProxyType(probes), diagnostics=tuple(diagnostics))


def _build_probe(name: str, declaration: Any) -> Probe:
    if not isinstance(declaration, Mapping):
        raise _InvalidProbe(f"declaration must be a mapping, got {type(declaration).__name__}")

    raw_kind = _read_kind(declaration)
    if raw_kind is None:
        raise _InvalidProbe('"kind" parameter missing')

    try:
        kind = ProbeKind(raw_kind)
    except ValueError:
        raise _InvalidProbe(f'kind "{raw_kind}" is not supported') from None

    match kind:
        case ProbeKind.MONITOR:
            return _build_monitor(name, declaration)
        case ProbeKind.COUNTER:
            return _build_counter(name, declaration)
        case ProbeKind.WATCHER:
            index, collection, options = _content_fields(declaration)
            return WatcherProbe(name=name, index=index, collection=collection, options=options)
        case ProbeKind.SAMPLER:
            index, collection, options = _content_fields(declaration)
            return SamplerProbe(name=name, index=index, collection=collection, options=options)


def _read_kind(declaration: Mapping[str, Any]) -> Any:
    for key in _KIND_KEYS:
        value = declaration.get(key)
        if value:
            return value
    return None


def _build_monitor(name: str, declaration: Mapping[str, Any]) -> MonitorProbe:
    hooks = declaration.get("hooks")
    if not isinstance(hooks, list) or not hooks:
        raise _InvalidProbe('Configuration error: missing "hooks"')
    return MonitorProbe(name=name, hooks=_event_names("hooks", hooks))


def _build_counter(name: str, declaration: Mapping[str, Any]) -> CounterProbe:
    increasers = declaration.get("increasers")
    decreasers = declaration.get("decreasers")

    if _is_unset(increasers) and _is_unset(decreasers):
        raise _InvalidProbe('Configuration error: missing "increasers" or "decreasers"')

    if increasers is not None and not isinstance(increasers, list):
        raise _InvalidProbe('Configuration error: "increasers" must be an array')

    if decreasers is not None and not isinstance(decreasers, list):
        raise _InvalidProbe('Configuration error: "decreasers" must be an array')

    increaser_events = _event_names("increasers", increasers or [])
    decreaser_events = _event_names("decreasers", decreasers or [])

    # An event cannot move the same counter in both directions
    if set(increaser_events) & set(decreaser_events):
        raise _InvalidProbe(
            "Configuration error: an event cannot be set both to increase and to decrease a counter"
        )

    return CounterProbe(name=name, increasers=increaser_events, decreasers=decreaser_events)


def _is_unset(value: Any) -> bool:
    # Absent or empty list; any other falsy value is a type error
    return value is None or (isinstance(value, list) and not value)


def _content_fields(declaration: Mapping[str, Any]) -> tuple[str, str, Mapping[str, Any]]:
    index = declaration.get("index")
    collection = declaration.get("collection")
    if not index or not collection:
        raise _InvalidProbe('Configuration error: missing "index" or "collection"')

    options = {key: value for key, value in declaration.items() if key not in _CONTENT_PROBE_KEYS}
    return str(index), str(collection), freeze_options(options)


def _event_names(field_name: str, values: list[Any]) -> tuple[str, ...]:
    if not all(isinstance(value, str) and value for value in values):
        raise _InvalidProbe(f'Configuration error: "{field_name}" must only contain event names')
    return tuple(values)
