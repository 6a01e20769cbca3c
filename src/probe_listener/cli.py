"""probe-listener Command Line Interface.

Entry point for the probe-listener CLI tool: validate probe settings,
print the resulting hook table, and fire test events at a collector.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from probe_listener import __version__
from probe_listener.contracts.errors import CollectorTransportError, SettingsError
from probe_listener.core.config import ProbeListenerSettings, load_settings
from probe_listener.probes.hooks import build_hook_table, host_hooks
from probe_listener.probes.validation import validate_probes

__all__ = ["app"]

app = typer.Typer(
    name="probe-listener",
    help="probe-listener: relay host events to a measurement collector.",
    no_args_is_help=True,
)

_SETTINGS_OPTION = typer.Option(
    ...,
    "--settings",
    "-s",
    help="Path to settings YAML file.",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"probe-listener version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """probe-listener: relay host events to a measurement collector."""
    from probe_listener.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted validation error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    panel = Panel(
        content,
        title=f"[red bold]{title}[/]",
        border_style="red",
        padding=(0, 1),
    )
    console.print(panel)


def _load_settings_or_exit(settings: str) -> ProbeListenerSettings:
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_validation_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if getattr(e, "problem", None) else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except SettingsError as e:
        _format_validation_error(
            title="File Not Found",
            message=str(e),
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            details.append(f"{loc}: {error['msg']}")
        _format_validation_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None


@app.command()
def validate(settings: str = _SETTINGS_OPTION) -> None:
    """Validate probe declarations without connecting to the collector."""
    config = _load_settings_or_exit(settings)
    result = validate_probes(config.probes)

    if result.diagnostics:
        _format_validation_error(
            title="Invalid Probes",
            message=f"{len(result.diagnostics)} of {len(config.probes)} probe(s) rejected",
            details=[str(diagnostic) for diagnostic in result.diagnostics],
            hint="Rejected probes are skipped at runtime unless strict: true is set.",
        )
        raise typer.Exit(1)

    typer.secho(f"✅ {len(result.probes)} probe(s) valid", fg=typer.colors.GREEN)
    for name, probe in result.probes.items():
        typer.echo(f"  {name}: {probe.kind.value}")


@app.command()
def hooks(
    settings: str = _SETTINGS_OPTION,
    output_format: str = typer.Option(
        "yaml",
        "--format",
        "-f",
        help="Output format: yaml or json.",
    ),
) -> None:
    """Print the event -> handler table a host should register."""
    if output_format not in ("yaml", "json"):
        typer.secho(f"Error: unknown format '{output_format}' (use yaml or json)", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    config = _load_settings_or_exit(settings)
    result = validate_probes(config.probes)
    table = host_hooks(build_hook_table(result.probes), config.startup_event) if result.probes else {}

    if output_format == "json":
        typer.echo(json.dumps(table, indent=2))
    else:
        typer.echo(yaml.safe_dump(table, sort_keys=False, default_flow_style=False), nl=False)


class _JsonPayload:
    """Payload given on the command line; serializes to the parsed JSON value."""

    def __init__(self, value: Any) -> None:
        self._value = value

    def serialize(self) -> Any:
        return self._value


@app.command()
def fire(
    events: list[str] = typer.Argument(..., help="Event names to fire, in order."),
    settings: str = _SETTINGS_OPTION,
    payload: str | None = typer.Option(
        None,
        "--payload",
        "-p",
        help="JSON payload attached to watcher/sampler measures.",
    ),
    transport: str | None = typer.Option(
        None,
        "--transport",
        "-t",
        help="Override collector.transport (e.g. console).",
    ),
) -> None:
    """Connect to the collector and fire events through the configured probes."""
    from probe_listener.contracts.enums import ConnectionState
    from probe_listener.listener import ProbeListener

    config = _load_settings_or_exit(settings)
    if transport is not None:
        config = config.model_copy(update={"collector": config.collector.model_copy(update={"transport": transport})})

    event_payload: _JsonPayload | None = None
    if payload is not None:
        try:
            event_payload = _JsonPayload(json.loads(payload))
        except json.JSONDecodeError as e:
            typer.secho(f"Error: --payload is not valid JSON: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(2) from None

    try:
        listener = ProbeListener.from_settings(config)
    except CollectorTransportError as e:
        _format_validation_error(title="Transport Error", message=str(e))
        raise typer.Exit(1) from None

    try:
        if listener.connection.connect() is not ConnectionState.CONNECTED:
            typer.secho("Error: collector unreachable", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        for event in events:
            listener.handle(event, event_payload)
        metrics = listener.health_metrics
    finally:
        listener.close()

    typer.echo(
        f"Fired {len(events)} event(s): "
        f"{metrics['measures_sent']} sent, {metrics['measures_failed']} failed, {metrics['measures_dropped']} dropped",
        err=True,
    )
    if metrics["measures_failed"]:
        raise typer.Exit(1)
