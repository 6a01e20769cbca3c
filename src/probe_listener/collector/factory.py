"""Factory functions for creating collector transports from configuration.

Glue between CollectorSettings and a configured TransportClient:
1. Discovering transport classes via pluggy hooks
2. Resolving the configured transport name
3. Instantiating and configuring the transport

Usage:
    from probe_listener.collector.factory import create_transport

    transport = create_transport(
        settings.collector.transport,
        settings.collector.transport_options(),
    )
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from probe_listener.collector.hookspecs import PROJECT_NAME, ProbeListenerTransportSpec
from probe_listener.collector.transports import BuiltinTransportsPlugin
from probe_listener.contracts.errors import CollectorTransportError
from probe_listener.contracts.transport import TransportClient

logger = structlog.get_logger(__name__)


def _resolve_transport_name(transport_class: type[TransportClient]) -> str:
    """Resolve a transport's name from its class-level ``_name`` or an instance.

    Raises:
        CollectorTransportError: If the name is not a non-empty string.
    """
    class_name = transport_class.__name__

    class_dict = transport_class.__dict__
    if "_name" in class_dict:
        name_hint = class_dict["_name"]
        if type(name_hint) is str and name_hint != "":
            return name_hint
        raise CollectorTransportError(
            class_name,
            f"Transport class attribute _name must be a non-empty string, got {name_hint!r}",
        )

    try:
        transport = transport_class()
    except Exception as e:
        raise CollectorTransportError(
            class_name,
            f"Failed to instantiate transport class during discovery: {e}",
        ) from e

    resolved_name = transport.name
    if type(resolved_name) is not str or resolved_name == "":
        raise CollectorTransportError(
            class_name,
            f"Transport name must be a non-empty string, got {resolved_name!r}",
        )
    return resolved_name


def discover_transports(
    transport_plugins: Iterable[Any] = (),
) -> dict[str, type[TransportClient]]:
    """Discover transports via pluggy hooks.

    Registers the built-in transports plus any plugin objects provided by
    the caller, then calls ``probe_listener_get_transports`` hooks to build
    the name->class registry.

    Args:
        transport_plugins: Additional plugin objects implementing
            ``probe_listener_get_transports``.

    Returns:
        Mapping of transport name to transport class.

    Raises:
        CollectorTransportError: If plugin registration fails or a name is
            invalid or duplicated.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(ProbeListenerTransportSpec)

    for plugin in [BuiltinTransportsPlugin(), *transport_plugins]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: hook spec mismatch
            # ValueError: plugin object or name registered twice
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise CollectorTransportError(
                "transport_plugins",
                f"Invalid transport plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[TransportClient]] = {}
    # Hook results come back in reverse registration order; flatten first
    for transport_classes in reversed(plugin_manager.hook.probe_listener_get_transports()):
        if transport_classes is None or isinstance(transport_classes, (str, bytes)):
            raise CollectorTransportError(
                "transport_plugins",
                f"probe_listener_get_transports returned {transport_classes!r}; expected iterable of transport classes",
            )
        for transport_class in transport_classes:
            transport_name = _resolve_transport_name(transport_class)
            if transport_name in registry:
                existing = registry[transport_name].__name__
                raise CollectorTransportError(
                    transport_name,
                    f"Duplicate transport name '{transport_name}' discovered: {existing} and {transport_class.__name__}",
                )
            registry[transport_name] = transport_class

    return registry


def create_transport(
    name: str,
    options: dict[str, Any],
    *,
    transport_plugins: Iterable[Any] = (),
) -> TransportClient:
    """Instantiate and configure the transport registered under ``name``.

    Raises:
        CollectorTransportError: On discovery failure, unknown name or
            invalid options.
    """
    registry = discover_transports(transport_plugins)
    try:
        transport_class = registry[name]
    except KeyError:
        available = sorted(registry.keys())
        raise CollectorTransportError(
            transport_name=name,
            message=f"Unknown transport. Available transports: {available}",
        ) from None

    transport = transport_class()
    transport.configure(options)
    logger.debug("transport_configured", transport=name, options_keys=sorted(options))
    return transport
