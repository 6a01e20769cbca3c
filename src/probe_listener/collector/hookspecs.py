"""pluggy hook specifications for collector transports.

Transports implement these hooks to register themselves. create_transport()
calls them to discover the available transports by name.

Usage (implementing a transport plugin):
    from probe_listener.collector.hookspecs import hookimpl

    class MyTransportPlugin:
        @hookimpl
        def probe_listener_get_transports(self):
            return [MyTransport]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from probe_listener.contracts.transport import TransportClient

PROJECT_NAME = "probe_listener"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ProbeListenerTransportSpec:
    """Hook specifications for transport plugins."""

    @hookspec
    def probe_listener_get_transports(self) -> list[type["TransportClient"]]:  # type: ignore[empty-body]
        """Return transport classes.

        Returns:
            List of transport classes (not instances) implementing
            TransportClient
        """
