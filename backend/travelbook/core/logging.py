"""
Structured logging for the booking engine, built on structlog.

Every event is a snake_case name plus key/value context. The request id bound
by RequestLoggingMiddleware is merged into every event, so one booking's
conflict check, retries and commit can be followed across modules.

Rendering:
  LOG_FORMAT=json     one JSON object per line
  LOG_FORMAT=console  coloured key=value lines (colours only on a terminal)
  LOG_FORMAT=auto     json in production/staging, console elsewhere
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from travelbook.core.config import Settings, get_settings

NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.WARNING,
}


def _plain_values(logger, method_name, event_dict):
    """Prices, amounts and travel dates are logged as their canonical strings."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
        elif isinstance(value, date):
            event_dict[key] = value.isoformat()
    return event_dict


def _wants_json(settings: Settings) -> bool:
    if settings.LOG_FORMAT == "json":
        return True
    if settings.LOG_FORMAT == "console":
        return False
    return settings.ENVIRONMENT in ("production", "staging")


def setup_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _plain_values,
    ]

    if _wants_json(settings):
        renderer = structlog.processors.JSONRenderer()
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    # Replace, not append: the lifespan may run more than once per process in tests
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
