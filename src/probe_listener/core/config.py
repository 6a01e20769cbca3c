"""
Configuration schema and loading for probe-listener.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Probe declarations are deliberately NOT validated by Pydantic: they are kept
as raw mappings and handed to probe_listener.probes.validate_probes(), which
excludes malformed probes one by one instead of rejecting the whole file.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from probe_listener.contracts.errors import SettingsError

DEFAULT_PLUGIN_ID = "kuzzle-plugin-probe"
DEFAULT_STARTUP_EVENT = "core:kuzzleStart"


class CollectorSettings(BaseModel):
    """Where and how to reach the remote collector.

    Example YAML:
        collector:
          host: kdc-kuzzle
          port: 7512
          transport: http
          max_connection_errors: 10
          retry_backoff_seconds: 2
    """

    model_config = {"frozen": True}

    host: str = Field(default="kdc-kuzzle", min_length=1, description="Collector hostname")
    port: int = Field(default=7512, gt=0, lt=65536, description="Collector port")
    scheme: Literal["http", "https"] = Field(default="http", description="URL scheme for the collector")
    transport: str = Field(default="http", min_length=1, description="Transport plugin name")
    max_connection_errors: int = Field(
        default=10,
        gt=0,
        description="Consecutive connection failures before the collector is given up on",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause between connection attempts",
    )
    timeout_seconds: float = Field(default=5.0, gt=0, description="Per-request timeout")
    auto_queue: bool = Field(
        default=True,
        description="Buffer measurements issued before the connection is established",
    )
    queue_size: int = Field(default=1000, gt=0, description="Maximum buffered measurements")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra transport-specific options",
    )

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def transport_options(self) -> dict[str, Any]:
        """Options handed to the transport's configure()."""
        return {
            "host": self.host,
            "port": self.port,
            "scheme": self.scheme,
            "timeout": self.timeout_seconds,
            "auto_queue": self.auto_queue,
            "queue_size": self.queue_size,
            **self.options,
        }


class ProbeListenerSettings(BaseModel):
    """Top-level settings.

    Example YAML:
        plugin_id: kuzzle-plugin-probe
        collector:
          host: kdc-kuzzle
        probes:
          requests:
            kind: monitor
            hooks: ["request:onSuccess"]
          users:
            kind: counter
            increasers: ["user:afterCreate"]
            decreasers: ["user:afterDelete"]
    """

    model_config = {"frozen": True}

    plugin_id: str = Field(
        default=DEFAULT_PLUGIN_ID,
        min_length=1,
        description="Collector plugin identifier; requests go to <plugin_id>/measure",
    )
    startup_event: str = Field(
        default=DEFAULT_STARTUP_EVENT,
        min_length=1,
        description="Host event that triggers the collector connection",
    )
    strict: bool = Field(
        default=False,
        description="Fail initialization when any probe is malformed instead of skipping it",
    )
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    probes: dict[str, Any] = Field(default_factory=dict, description="Raw probe declarations")

    @field_validator("probes", mode="before")
    @classmethod
    def validate_probes_mapping(cls, v: Any) -> Any:
        """An absent/empty probes section means no probes."""
        if v is None:
            return {}
        return v


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # Unresolved: keep the original text so validation reports it
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(config: dict[str, Any]) -> dict[str, Any]:
    """Dynaconf upper-cases top-level keys and keeps env override keys as given.

    Top-level keys and the collector section are lowercased (later keys win,
    so environment overrides take precedence). Probe names are kept.
    """
    lowered = {k.lower(): v for k, v in config.items()}
    collector = lowered.get("collector")
    if isinstance(collector, dict):
        lowered["collector"] = {k.lower(): v for k, v in collector.items()}
    return lowered


def load_settings(config_path: Path) -> ProbeListenerSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (PROBE_LISTENER_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: PROBE_LISTENER_COLLECTOR__HOST for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ProbeListenerSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        SettingsError: If the config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise SettingsError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="PROBE_LISTENER",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _expand_env_vars(_lower_keys(raw_config))

    return ProbeListenerSettings(**raw_config)
