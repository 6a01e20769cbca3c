"""Console transport for local debugging.

Writes each measurement request to stdout or stderr instead of a remote
collector. connect() always succeeds.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Literal, TextIO, TypeGuard

import structlog

from probe_listener.contracts.errors import CollectorTransportError
from probe_listener.contracts.transport import MeasureRequest

logger = structlog.get_logger(__name__)


def _is_valid_format(v: str) -> TypeGuard[Literal["json", "pretty"]]:
    return v in {"json", "pretty"}


def _is_valid_output(v: str) -> TypeGuard[Literal["stdout", "stderr"]]:
    return v in {"stdout", "stderr"}


class ConsoleTransport:
    """Print measurement requests for testing and debugging.

    Supports two output formats:
    - json: One JSON object per line, the request's wire shape
    - pretty: ``destination action event=... [payload=...]``

    Configuration options (set under ``collector.options``):
        format: "json" (default) or "pretty"
        output: "stdout" (default) or "stderr"

    Collector address options are accepted and ignored.
    """

    _name = "console"

    _VALID_FORMATS: frozenset[str] = frozenset({"json", "pretty"})
    _VALID_OUTPUTS: frozenset[str] = frozenset({"stdout", "stderr"})

    def __init__(self) -> None:
        self._format: Literal["json", "pretty"] = "json"
        self._output: Literal["stdout", "stderr"] = "stdout"
        self._stream: TextIO = sys.stdout

    @property
    def name(self) -> str:
        return self._name

    def configure(self, options: dict[str, Any]) -> None:
        """Configure output format and stream.

        Raises:
            CollectorTransportError: If configuration values are invalid
        """
        format_value = options.get("format", "json")
        if not isinstance(format_value, str):
            raise CollectorTransportError(
                self._name,
                f"'format' must be a string, got {type(format_value).__name__}",
            )
        if _is_valid_format(format_value):
            self._format = format_value
        else:
            raise CollectorTransportError(
                self._name,
                f"Invalid format '{format_value}'. Must be one of: {', '.join(sorted(self._VALID_FORMATS))}",
            )

        output_value = options.get("output", "stdout")
        if not isinstance(output_value, str):
            raise CollectorTransportError(
                self._name,
                f"'output' must be a string, got {type(output_value).__name__}",
            )
        if _is_valid_output(output_value):
            self._output = output_value
        else:
            raise CollectorTransportError(
                self._name,
                f"Invalid output '{output_value}'. Must be one of: {', '.join(sorted(self._VALID_OUTPUTS))}",
            )
        self._stream = sys.stdout if self._output == "stdout" else sys.stderr

    def connect(self) -> None:
        logger.debug("Console transport connected", output=self._output)

    def query(self, request: MeasureRequest) -> None:
        if self._format == "json":
            line = json.dumps(request.to_dict(), default=str)
        else:
            line = self._format_pretty(request)
        print(line, file=self._stream)

    def disconnect(self) -> None:
        """Flush the stream. It is not closed: stdout/stderr are not ours."""
        try:
            self._stream.flush()
        except (OSError, ValueError) as e:
            logger.warning("Failed to flush console stream", transport=self._name, error=str(e))

    @staticmethod
    def _format_pretty(request: MeasureRequest) -> str:
        details = [f"{key}={request.body[key]}" for key in sorted(request.body)]
        return f"{request.destination} {request.action} {' '.join(details)}"
