"""Logging for the ordering and identity domains.

One call to ``configure_logging()`` per process wires structlog onto the
standard library root logger. Output goes to stdout; setting ``LOG_FILE``
adds a rotating file next to it. Deployed environments (production, staging)
render JSON lines, every other environment renders for a terminal.

Environment:
    LOG_LEVEL   explicit level, overrides the environment default
    LOG_FILE    path of an optional rotating log file
    ENV, ENVIRONMENT, PROTEAN_ENV
                first one set names the environment (default ``development``)
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

DEPLOYED_ENVIRONMENTS = ("production", "staging")

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Chatty dependencies only report problems
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "protean")

_CONFIGURED = False


def current_environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL") or _LEVELS.get(current_environment(), "INFO")


def _handlers() -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    log_file = os.getenv("LOG_FILE")
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        )
    return handlers


def _renderer(environment: str):
    if environment in DEPLOYED_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(force: bool = False) -> None:
    """Configure logging once per process; ``force`` reconfigures."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    level = get_log_level()
    root = logging.getLogger()
    root.handlers = _handlers()
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(current_environment()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
