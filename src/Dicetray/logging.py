# logging.py

import logging
import os
from logging.handlers import RotatingFileHandler

import structlog
from structlog.contextvars import merge_contextvars

from Dicetray.config import Settings


def _handler_level(name: str | None, fallback: int) -> int | None:
    """Map a per-handler level name to a logging level; None disables the handler."""
    if name is None:
        return fallback
    if name.upper() == "NONE":
        return None
    return getattr(logging, name.upper(), fallback)


def setup_logging(settings: Settings | None = None) -> None:
    """Initialize structlog + stdlib logging.

    Console logging is on by default; the rotating JSON file handler is only
    installed when settings.logging_file names a level.
    """
    level_name = (settings.logging_level if settings else "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.captureWarnings(True)

    # ProcessorFormatter renders BOTH structlog and stdlib/third-party logs as JSON
    processor_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=[
            structlog.processors.add_log_level,
            merge_contextvars,
        ],
    )

    root_handlers: list[logging.Handler] = []

    console_level = _handler_level(settings.logging_console if settings else None, level)
    if console_level is not None:
        ch = logging.StreamHandler()
        ch.setLevel(console_level)
        ch.setFormatter(processor_formatter)
        root_handlers.append(ch)

    file_level = _handler_level(settings.logging_file if settings else "NONE", level)
    if file_level is not None and settings is not None:
        path = settings.logging_file_path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fh = RotatingFileHandler(
            path,
            maxBytes=settings.logging_max_bytes,
            backupCount=settings.logging_backup_count,
        )
        fh.setLevel(file_level)
        fh.setFormatter(processor_formatter)
        root_handlers.append(fh)

    # force=True replaces any prior configuration
    logging.basicConfig(level=level, handlers=root_handlers, force=True)

    lg = logging.getLogger("asyncio")
    lg.handlers = []
    lg.propagate = True

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # Hand off to ProcessorFormatter on handlers
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
