"""Structured logging setup for Toolgate.

Application events are rendered by structlog and written through stdlib
logging to a single stream. Audit trail events use the ``audit`` logger and
can additionally be persisted to a file, one rendered event per line.
"""

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog

AUDIT_LOGGER_NAME = "audit"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _processors(json_logs: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def attach_audit_file(path: str | Path) -> logging.Handler:
    """Append audit trail events to ``path`` in addition to the main stream."""
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger(AUDIT_LOGGER_NAME).addHandler(handler)
    return handler


def configure_logging(
    level: str = "INFO",
    json_logs: bool = True,
    stream: TextIO = sys.stdout,
    audit_log_file: str | Path | None = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render events as JSON lines instead of console output
        stream: Stream for application logs
        audit_log_file: Optional file that also receives audit trail events
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logging.basicConfig(
        level=log_level,
        stream=stream,
        format="%(message)s" if json_logs else CONSOLE_FORMAT,
        force=True,
    )

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    for handler in audit_logger.handlers[:]:
        audit_logger.removeHandler(handler)
        handler.close()
    if audit_log_file is not None:
        attach_audit_file(audit_log_file)

    structlog.configure(
        processors=_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stderr_logging(
    level: str = "WARNING",
    json_logs: bool = False,
    audit_log_file: str | Path | None = None,
) -> None:
    """CLI variant: logs go to stderr so stdout carries only hook output."""
    configure_logging(
        level=level,
        json_logs=json_logs,
        stream=sys.stderr,
        audit_log_file=audit_log_file,
    )
