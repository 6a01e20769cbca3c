"""
probe-listener: forwards host lifecycle events to a remote measurement collector.

Events fired by the host are matched against user-declared probes and relayed
as measurement requests to a collector over a persistent connection.
"""

__version__ = "0.1.0"
