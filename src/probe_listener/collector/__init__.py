"""Collector side: transports, connection lifecycle and measurement dispatch.

Components:
- connection: CollectorConnection, bounded retry-then-give-up lifecycle
- dispatcher: MeasureDispatcher, one request per fired (event, kind)
- factory: create_transport() from pluggy-discovered transports
- hookspecs: pluggy hooks for transport discovery
- buffer: RequestBuffer for auto-queued measurements
- transports: built-in transports (http, console)
"""

from probe_listener.collector.buffer import RequestBuffer
from probe_listener.collector.connection import CollectorConnection
from probe_listener.collector.dispatcher import MeasureDispatcher
from probe_listener.collector.factory import create_transport, discover_transports

__all__ = [
    "CollectorConnection",
    "MeasureDispatcher",
    "RequestBuffer",
    "create_transport",
    "discover_transports",
]
