# src/probe_listener/probes/hooks.py
"""Hook table: which probe kinds react to which host events.

The table is derived once from validated probes and is read-only afterwards.
Each entry holds either a single kind or a tuple of kinds, growing from the
former to the latter when a second distinct kind registers for the same
event. A kind is never listed twice for one event, so several probes of the
same kind sharing an event still produce a single dispatch per kind.

Merge rule for registering ``kind`` on ``event``:
- absent: event -> kind
- single different kind: event -> (existing, kind)
- tuple without kind: append kind
- already present: no-op

Because registration is idempotent, the set of kinds bound to an event does
not depend on probe iteration order. Order inside a tuple follows probe
declaration order.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from probe_listener.contracts.enums import ProbeKind
from probe_listener.contracts.probes import Probe

# Handler bound to the host-started event; not a probe kind.
CONNECT_HANDLER = "connect"

HookEntry = ProbeKind | tuple[ProbeKind, ...]


def _merge(entry: HookEntry | None, kind: ProbeKind) -> HookEntry:
    if entry is None:
        return kind
    if isinstance(entry, tuple):
        return entry if kind in entry else (*entry, kind)
    return entry if entry == kind else (entry, kind)


class HookTable(Mapping[str, HookEntry]):
    """Immutable mapping of event name to the probe kind(s) bound to it.

    Example:
        >>> table = build_hook_table(probes)
        >>> table["document:beforeCreate"]
        <ProbeKind.WATCHER: 'watcher'>
        >>> table.kinds_for("document:beforeCreate")
        (<ProbeKind.WATCHER: 'watcher'>,)
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, HookEntry] | None = None) -> None:
        self._entries: Mapping[str, HookEntry] = MappingProxyType(dict(entries or {}))

    def __getitem__(self, event: str) -> HookEntry:
        return self._entries[event]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HookTable({dict(self._entries)!r})"

    def kinds_for(self, event: str) -> tuple[ProbeKind, ...]:
        """Kinds bound to ``event`` as a tuple; empty if the event is unbound."""
        entry = self._entries.get(event)
        if entry is None:
            return ()
        if isinstance(entry, tuple):
            return entry
        return (entry,)


def build_hook_table(probes: Mapping[str, Probe]) -> HookTable:
    """Build the hook table from validated probes.

    Args:
        probes: Validated probes keyed by name, in declaration order

    Returns:
        HookTable covering every trigger event of every probe
    """
    entries: dict[str, HookEntry] = {}
    for probe in probes.values():
        for event in probe.trigger_events():
            entries[event] = _merge(entries.get(event), probe.kind)
    return HookTable(entries)


def host_hooks(table: HookTable, startup_event: str) -> dict[str, str | list[str]]:
    """Host-facing surface: event name to handler name(s).

    Handler names are the probe kind values. ``startup_event`` is bound to
    the connect handler, appended if probes also listen to that event.
    """
    hooks: dict[str, str | list[str]] = {}
    for event, entry in table.items():
        if isinstance(entry, tuple):
            hooks[event] = [kind.value for kind in entry]
        else:
            hooks[event] = entry.value

    existing = hooks.get(startup_event)
    if existing is None:
        hooks[startup_event] = CONNECT_HANDLER
    elif isinstance(existing, list):
        hooks[startup_event] = [*existing, CONNECT_HANDLER]
    else:
        hooks[startup_event] = [existing, CONNECT_HANDLER]
    return hooks
