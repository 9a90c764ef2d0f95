"""Structured logging: structlog over stdlib logging, written to stderr.

stdout belongs to command output (``ecograph order`` is meant to be piped),
so every log line goes to stderr. Events are dotted names with key/value
context; ``bind_run`` tags everything logged during one run with its id.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Chatty third-party loggers, capped regardless of the chosen level
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Arguments win over ``ECOGRAPH_LOG_LEVEL`` / ``ECOGRAPH_LOG_FORMAT``;
    defaults are INFO and console.
    """
    log_level = (level or os.environ.get("ECOGRAPH_LOG_LEVEL") or "INFO").upper()
    fmt = (log_format or os.environ.get("ECOGRAPH_LOG_FORMAT") or "console").lower()
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(fmt),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["stderr"], "level": log_level},
            "loggers": {
                "ecograph": {"level": log_level},
                **{name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            },
        }
    )


@contextmanager
def bind_run(run_id: str) -> Iterator[None]:
    """Attach ``run_id`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield
