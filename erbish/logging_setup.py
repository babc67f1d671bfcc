import logging
import sys
from typing import List, Optional, TextIO

import structlog

LOG_FORMATS = ("console", "json")

def _renderer_for(log_format: str, stream: TextIO):
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())

def configure_logging(log_level_str: str = "warning", log_format: str = "console", stream: Optional[TextIO] = None):
    # routes structlog events for the "erbish" namespace to stderr; stdout carries rendered output.
    log_level = getattr(logging, log_level_str.upper(), logging.WARNING)
    stream = stream or sys.stderr

    pre_chain: List = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer_for(log_format, stream),
            foreign_pre_chain=pre_chain,
        )
    )

    erbish_logger = logging.getLogger("erbish")
    erbish_logger.handlers.clear()
    erbish_logger.addHandler(handler)
    erbish_logger.setLevel(log_level)

    structlog.get_logger(__name__).info("logging_configured", level=log_level_str, format=log_format)
