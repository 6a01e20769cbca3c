"""Structured logging configuration for probe-listener.

Uses structlog for structured, keyword-context logging.

Architecture:
    Configures BOTH structlog and stdlib logging so that they emit the same
    output (JSON or console). ProcessorFormatter routes stdlib records
    through structlog's processor chain, so third-party libraries using
    logging.getLogger(__name__) render like our own structlog loggers.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Third-party loggers that log every request at DEBUG/INFO. A forwarder
# emitting one request per host event would drown in them otherwise.
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove ProcessorFormatter bookkeeping fields from output.

    ProcessorFormatter always adds _record and _from_structlog; their absence
    would mean the formatter contract changed.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _resolve_level(level: str) -> int:
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level {level!r}. Use DEBUG, INFO, WARNING or ERROR.")
    return log_level


def _final_processors(json_output: bool, stream: TextIO) -> list[Any]:
    if json_output:
        return [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    # No ANSI colours when stderr is redirected to a file or journal
    colors = hasattr(stream, "isatty") and stream.isatty()
    return [
        _remove_internal_fields,
        structlog.dev.ConsoleRenderer(colors=colors),
    ]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging.

    Every record carries the emitting module as ``logger`` so connection,
    dispatch and transport events can be told apart.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    log_level = _resolve_level(level)
    # Log to stderr: the console transport and CLI output own stdout
    stream = sys.stderr

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration in tests needs fresh loggers
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        ProcessorFormatter(
            processors=_final_processors(json_output, stream),
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the root level
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)

