"""Logging configuration using structlog.

Console output with colors while developing, one JSON object per line
in production. Standard library loggers (uvicorn, starlette) are routed
through the same stream so server and application events interleave.
"""

import logging
import sys

import structlog

from podserve.config import Settings

# Loggers whose INFO output repeats what LoggingMiddleware already records
QUIET_LOGGERS = ("uvicorn.access",)


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Render JSON lines instead of colored console output.
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ExtraAdder(),
    ]

    if json_format:
        tail: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        tail = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + tail,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from application settings."""
    json_format = settings.log_json or settings.environment == "production"
    setup_logging(log_level="DEBUG" if settings.debug else settings.log_level, json_format=json_format)
