"""
Structured logging configuration using structlog.
JSON lines in production, coloured console when DEBUG is on.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from app.config import settings

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "urllib3", "rq.worker")


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through the same renderer."""
    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = (not settings.DEBUG) if json_logs is None else json_logs

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Foreign (stdlib) records get the same timestamp/level fields
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )


@contextmanager
def bound_context(**fields) -> Iterator[None]:
    """Bind fields (batch_id, invoice_id, ...) to every log line inside the block."""
    tokens = structlog.contextvars.bind_contextvars(**fields)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
