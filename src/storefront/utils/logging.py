"""Logging configuration for the Storefront.

Stdlib logging carries the records; structlog adds structure. Production and
staging render JSON lines, everything else renders for the console. Set
``LOG_FILE`` to additionally write a rotating log file.
"""

import logging
import logging.handlers
import os
import sys
from typing import Any

import structlog

from storefront.config import environment

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


def get_log_level(env: str | None = None) -> str:
    env = (env or environment()).lower()
    return os.getenv("LOG_LEVEL", _LEVELS.get(env, "INFO")).upper()


def uses_json(env: str | None = None) -> bool:
    return (env or environment()).lower() in ("production", "staging")


def setup_stdlib_logging(env: str | None = None) -> None:
    log_level = get_log_level(env)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_processors(env: str | None = None) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if uses_json(env):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(env: str | None = None) -> None:
    """Configure stdlib logging and structlog for the storefront process."""
    setup_stdlib_logging(env)
    structlog.configure(
        processors=build_processors(env),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Bind values that every later log line of this request will carry."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
