# /helpdesk_bot/utils/logging.py

import logging
import sys
import structlog
from helpdesk_bot.config.settings import settings

# Structured logging for the whole process. Application code logs either
# through structlog (routes) or the standard library (engine, services);
# both end up in the same handler and renderer.

SERVICE_NAME = "helpdesk-bot"

# Libraries that log every request at INFO.
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def add_service_context(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def _renderer():
    if settings.environment in ("development", "test"):
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def setup_logging(level: str = None):
    """
    Routes structlog and stdlib records through one ProcessorFormatter on
    stdout. JSON lines everywhere except local development and tests.
    """
    level_name = (level or settings.log_level).upper()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=_renderer(),
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
