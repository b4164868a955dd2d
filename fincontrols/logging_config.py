import logging
from typing import Optional

import structlog

from fincontrols.config import settings


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", settings.APP_NAME.lower())
    return event_dict


def setup_logging(level: Optional[str] = None) -> None:
    """JSON lines outside development; pretty console output while developing."""
    if settings.ENVIRONMENT == "development":
        tail = [structlog.dev.ConsoleRenderer()]
    else:
        tail = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service,
            *tail,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
