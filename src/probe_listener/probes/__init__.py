"""Probe validation and hook table construction."""

from probe_listener.probes.hooks import CONNECT_HANDLER, HookEntry, HookTable, build_hook_table, host_hooks
from probe_listener.probes.validation import ValidationResult, validate_probes

__all__ = [
    "CONNECT_HANDLER",
    "HookEntry",
    "HookTable",
    "ValidationResult",
    "build_hook_table",
    "host_hooks",
    "validate_probes",
]
