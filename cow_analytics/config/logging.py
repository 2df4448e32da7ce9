"""
Logging Configuration for COW Movement Analytics

Structured logging through structlog. The same pipeline renders our own
events and foreign stdlib records (uvicorn, urllib3) as JSON or console text.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from cow_analytics.config.settings import get_settings

# Loggers that share the root handler at the configured level
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# Chatty HTTP client loggers, kept at WARNING unless DEBUG is requested
HTTP_CLIENT_LOGGERS = ("urllib3", "httpx")


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Override renderer ("json" or "text")
    """
    settings = get_settings()
    level = log_level or settings.monitoring.log_level
    fmt = (log_format or settings.monitoring.log_format).lower()

    # Unknown names fall back to INFO
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Shared by structlog events and foreign stdlib records
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if fmt == "json":
        renderer = JSONRenderer()
    else:
        # Colors only on a terminal
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Reconfiguring must not stack handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for logger_name in SERVER_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.addHandler(console_handler)
        logger.setLevel(numeric_level)

    client_level = numeric_level if numeric_level <= logging.DEBUG else logging.WARNING
    for logger_name in HTTP_CLIENT_LOGGERS:
        logging.getLogger(logger_name).setLevel(client_level)

    log = structlog.get_logger(__name__)
    log.info(
        "Logging configured",
        level=level,
        format=fmt,
        environment=settings.app_env,
    )
