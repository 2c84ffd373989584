"""structlog setup for applications using the Message DB client.

The library itself only calls ``structlog.get_logger``. Applications call
``configure_logging`` once at startup to route those events through the
standard library root logger as JSON or as human-readable console lines.
"""

import logging
from typing import Any

import structlog

from messagedb_client.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog and the root logger.

    Args:
        config: Logging level and format ("json" or "text")
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    render_processors: list[Any] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if config.log_format.lower() == "json":
        render_processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_processors.append(structlog.dev.ConsoleRenderer(colors=False))

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=render_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.log_level.upper())
