# src/tsfinder/core/logging.py
"""Structured logging configuration for tsfinder.

Uses structlog for structured logging, routed through stdlib logging so that
records from the Google client libraries come out in the same format.

Output contract:
    stdout belongs to the command result. `tsfinder query --format json`
    prints exactly one JSON document there for scripts to parse. Every log
    record, including per-probe detail at --verbose and grpc warnings, goes
    to stderr. --json-logs switches only the stderr rendering; it never
    touches stdout.

Architecture:
    structlog and stdlib logging share one processor chain. ProcessorFormatter
    renders both, so ``logging.getLogger(__name__)`` records from grpc or
    google-auth look the same as ``get_logger(__name__)`` records from tsfinder.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Client library loggers that are excessively verbose at DEBUG level.
# Clamped to WARNING even when tsfinder runs with --verbose.
_NOISY_LOGGERS: tuple[str, ...] = (
    "google",
    "google.auth",
    "google.auth.transport",
    "google.api_core",
    "google.cloud.spanner_v1",
    "grpc",
    "urllib3",
    "urllib3.connectionpool",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove ProcessorFormatter bookkeeping fields from output.

    ProcessorFormatter always adds _record and _from_structlog, so a missing
    key here is a bug in the logging setup.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Safe to call more than once; each call replaces the root handlers.

    Args:
        json_output: If True, one JSON object per line. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        stream: Log destination. Defaults to sys.stderr as it is at call time,
            so pytest capture and CliRunner see the records.
    """
    log_level = getattr(logging, level.upper())
    stream = stream if stream is not None else sys.stderr

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
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
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the root level.
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
