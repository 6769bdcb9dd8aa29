import logging
import sys
from typing import Optional

import structlog

from tradeboard.config import Settings, settings

# Records coming from aiohttp/asyncio through stdlib logging
NOISY_LOGGERS = ("aiohttp.access", "asyncio")


def configure_logging(config: Optional[Settings] = None):
    config = config or settings
    level = logging.getLevelName(config.LOG_LEVEL.upper())
    development = config.ENV == "development"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if development:
        renderer = structlog.dev.ConsoleRenderer()
        processors = shared_processors + [renderer]
    else:
        renderer = structlog.processors.JSONRenderer()
        processors = shared_processors + [structlog.processors.dict_tracebacks, renderer]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    # aiohttp's own records get the same rendering as ours
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Access lines duplicate the request middleware events
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


logger = structlog.get_logger()
