"""
Structured logging for the simplifier and its CLI.

All logging goes through structlog, rendered by the stdlib logging handler on
stderr so that it never mixes with the simplified output on stdout.
"""

import logging
import sys
from typing import Any

import structlog

LOG_FORMATS = ("console", "json")


def get_logger(system: str) -> Any:
    """
    Return a structlog logger bound to ``system`` that emits through the
    stdlib logger of the same name.

    Until setup_logging runs, the NullHandler keeps the library silent;
    afterwards events propagate to the root handler on stderr.
    """
    stdlib_logger = logging.getLogger(system)
    if not any(isinstance(h, logging.NullHandler) for h in stdlib_logger.handlers):
        stdlib_logger.addHandler(logging.NullHandler())
    return structlog.wrap_logger(
        stdlib_logger,
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
        system=system,
    )


def setup_logging(level: str = "WARNING", fmt: str = "console") -> None:
    """Configure structlog once for the whole process."""
    if fmt not in LOG_FORMATS:
        raise ValueError(f"unknown log format {fmt!r}, expected one of {LOG_FORMATS}")

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    # sympy's own loggers are chatty at DEBUG
    logging.getLogger("sympy").setLevel(logging.WARNING)
