from __future__ import annotations

import logging

import structlog
from structlog.contextvars import merge_contextvars

from .config import settings


def configure_logging() -> None:
    """
    Route stdlib logging and structlog through one handler.

    Topic tasks bind ``topic`` (and synthesis attempts ``variant``) as
    contextvars, so every event emitted while a topic is in flight carries
    them without threading a logger through each call.
    """
    resolved_level = str(settings.log_level or "INFO").upper()
    log_level = getattr(logging, resolved_level, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(format="%(message)s", level=log_level, handlers=[handler], force=True)

    processors = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.log_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
