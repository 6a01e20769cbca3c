"""Built-in collector transports.

Available transports:
- HttpCollectorTransport ("http"): POST measurements to the collector with httpx
- ConsoleTransport ("console"): Print measurements for local debugging

Plugin registration:
    Transports are registered via the probe_listener_get_transports hook.
    BuiltinTransportsPlugin registers the built-in ones.
"""

from probe_listener.collector.hookspecs import hookimpl
from probe_listener.collector.transports.console import ConsoleTransport
from probe_listener.collector.transports.http import HttpCollectorTransport


class BuiltinTransportsPlugin:
    """Plugin that registers built-in transports."""

    @hookimpl
    def probe_listener_get_transports(self) -> list[type]:
        return [HttpCollectorTransport, ConsoleTransport]


__all__ = [
    "BuiltinTransportsPlugin",
    "ConsoleTransport",
    "HttpCollectorTransport",
]
