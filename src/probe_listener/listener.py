# src/probe_listener/listener.py
"""ProbeListener: the object a host application wires its events into.

Initialization is a one-shot sequence:
1. validate raw probe declarations (malformed probes are skipped, or fatal
   with ``strict``)
2. build the hook table from the admitted probes
3. create the transport and the collector connection (not yet connected)

The resulting ProbeContext snapshot is immutable; a new configuration means
a new ProbeListener.

Host-facing surface:
    ``listener.hooks`` maps each event name to the handler name(s) to call.
    Handler names are probe kinds plus "connect", bound to the host-started
    event. ``listener.handlers`` maps those names to callables taking
    ``(payload, event)``. Hosts with a single entry point can call
    ``listener.handle(event, payload)`` instead.

Example:
    >>> listener = ProbeListener.from_settings(load_settings(Path("probes.yaml")))
    >>> for event, names in listener.hooks.items():
    ...     host.register(event, names)
    >>> listener.handle("document:beforeCreate", request)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from probe_listener.collector.connection import CollectorConnection
from probe_listener.collector.dispatcher import MeasureDispatcher
from probe_listener.collector.factory import create_transport
from probe_listener.contracts.enums import ProbeKind
from probe_listener.contracts.probes import Probe, ProbeDiagnostic
from probe_listener.contracts.transport import TransportClient
from probe_listener.core.config import ProbeListenerSettings
from probe_listener.probes.hooks import CONNECT_HANDLER, HookTable, build_hook_table, host_hooks
from probe_listener.probes.validation import validate_probes

logger = structlog.get_logger(__name__)

Handler = Callable[[Any, str], None]


@dataclass(frozen=True, slots=True)
class ProbeContext:
    """Immutable snapshot produced at initialization.

    Attributes:
        probes: Admitted probes keyed by name
        hook_table: Event name to bound probe kind(s)
        diagnostics: Probes rejected by validation
        startup_event: Host event bound to the connect handler
    """

    probes: Mapping[str, Probe]
    hook_table: HookTable
    diagnostics: tuple[ProbeDiagnostic, ...]
    startup_event: str


class ProbeListener:
    """Relays host events to the collector according to configured probes."""

    def __init__(
        self,
        context: ProbeContext,
        connection: CollectorConnection,
        dispatcher: MeasureDispatcher,
    ) -> None:
        self._context = context
        self._connection = connection
        self._dispatcher = dispatcher

        # No probes: nothing to listen to, and no reason to connect
        if context.probes:
            self._hooks = host_hooks(context.hook_table, context.startup_event)
        else:
            self._hooks = {}

    @classmethod
    def from_settings(
        cls,
        settings: ProbeListenerSettings,
        *,
        transport: TransportClient | None = None,
        transport_plugins: Iterable[Any] = (),
    ) -> ProbeListener:
        """Build a listener from settings.

        Args:
            settings: Loaded settings
            transport: Pre-configured transport; created from
                ``settings.collector`` when omitted
            transport_plugins: Extra pluggy plugins providing transports

        Raises:
            ProbeConfigurationError: If ``settings.strict`` and a probe is malformed
            CollectorTransportError: If the transport cannot be created
        """
        result = validate_probes(settings.probes)
        if settings.strict:
            result.raise_if_invalid()

        context = ProbeContext(
            probes=result.probes,
            hook_table=build_hook_table(result.probes),
            diagnostics=result.diagnostics,
            startup_event=settings.startup_event,
        )

        collector = settings.collector
        if transport is None:
            transport = create_transport(
                collector.transport,
                collector.transport_options(),
                transport_plugins=transport_plugins,
            )

        connection = CollectorConnection(
            transport,
            collector_url=collector.url,
            max_connection_errors=collector.max_connection_errors,
            retry_backoff_seconds=collector.retry_backoff_seconds,
        )
        dispatcher = MeasureDispatcher(connection, plugin_id=settings.plugin_id)

        logger.info(
            "Probe listener initialized",
            probes=len(context.probes),
            rejected=len(context.diagnostics),
            events=len(context.hook_table),
        )
        return cls(context, connection, dispatcher)

    @property
    def context(self) -> ProbeContext:
        return self._context

    @property
    def connection(self) -> CollectorConnection:
        return self._connection

    @property
    def hooks(self) -> dict[str, str | list[str]]:
        """Event name to handler name(s), for registration with the host."""
        return dict(self._hooks)

    @property
    def handlers(self) -> dict[str, Handler]:
        """Handler name to callable, matching the names used in ``hooks``."""
        return {
            ProbeKind.MONITOR.value: self.monitor,
            ProbeKind.COUNTER.value: self.counter,
            ProbeKind.WATCHER.value: self.watcher,
            ProbeKind.SAMPLER.value: self.sampler,
            CONNECT_HANDLER: self.connect,
        }

    def handle(self, event: str, payload: Any = None) -> None:
        """Dispatch ``event`` once for every probe kind bound to it."""
        if event == self._context.startup_event and self._hooks:
            self.connect(payload, event)
        for kind in self._context.hook_table.kinds_for(event):
            self._dispatcher.dispatch(kind, event, payload)

    def monitor(self, payload: Any, event: str) -> None:
        self._dispatcher.dispatch(ProbeKind.MONITOR, event)

    def counter(self, payload: Any, event: str) -> None:
        self._dispatcher.dispatch(ProbeKind.COUNTER, event)

    def watcher(self, payload: Any, event: str) -> None:
        self._dispatcher.dispatch(ProbeKind.WATCHER, event, payload)

    def sampler(self, payload: Any, event: str) -> None:
        self._dispatcher.dispatch(ProbeKind.SAMPLER, event, payload)

    def connect(self, payload: Any = None, event: str | None = None) -> None:
        """Host-started handler: connect to the collector in the background."""
        logger.debug("Host started, connecting to collector", hook_event=event)
        self._connection.start()

    @property
    def health_metrics(self) -> dict[str, Any]:
        return {
            "probes": len(self._context.probes),
            "rejected_probes": len(self._context.diagnostics),
            **self._connection.health_metrics,
            **self._dispatcher.health_metrics,
        }

    def close(self) -> None:
        """Disconnect from the collector. Idempotent."""
        logger.info("Probe listener closing", **self.health_metrics)
        self._connection.close()
