"""Log formatters for the QueryBridge logging system.

Formatting is done by structlog's ``ProcessorFormatter`` so records from
QueryBridge loggers and from foreign stdlib loggers (uvicorn, asyncpg,
aiomysql) share one renderer and one redaction step.

Functions:
    shared_processors: Processors applied to every record before rendering
    get_formatter: Build a stdlib formatter for the configured format

Example:
    >>> handler.setFormatter(get_formatter("json"))
"""

import logging
from typing import Any, List

import structlog

from .structured import redact_secrets

LOG_FORMATS = ("json", "text")


def shared_processors() -> List[Any]:
    """Processors run for structlog events and foreign log records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]


def get_formatter(format: str = "json", *, colors: bool = False) -> logging.Formatter:
    """Build a formatter rendering records as JSON lines or console text.

    Args:
        format: ``json`` or ``text``
        colors: Colorize text output

    Returns:
        Formatter for stdlib handlers

    Raises:
        ValueError: If the format is unknown
    """
    fmt = format.lower()
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {format}")

    if fmt == "json":
        final = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        final = [structlog.dev.ConsoleRenderer(colors=colors)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
    )
