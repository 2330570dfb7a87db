"""
Structured logging setup
"""
import logging
import sys
from typing import Optional

import structlog

from graphrec.config import LOGGING_CONFIG


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None):
    """
    Configure structlog on top of the stdlib logging module

    Args:
        level: Log level name, defaults to GRAPHREC_LOG_LEVEL
        json_logs: Render JSON lines instead of console output
    """
    level = (level or LOGGING_CONFIG['level']).upper()
    if json_logs is None:
        json_logs = LOGGING_CONFIG['json']

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (structlog.processors.JSONRenderer() if json_logs
                else structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
