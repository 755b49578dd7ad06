"""Structured logging implementation for QueryBridge.

Log context (request ids, backend kind) is stored in ``contextvars`` through
``structlog.contextvars`` so it follows each asyncio task instead of being
shared by every request handled on the same thread.

Classes:
    LogContext: Task-local context for log correlation
    StructuredLogger: Main structured logging interface

Functions:
    redact_secrets: structlog processor masking connection-string credentials

Example:
    >>> logger = StructuredLogger("querybridge.service")
    >>> with logger.context(request_id="req_123", backend="postgres"):
    ...     logger.info("Query completed", row_count=12)
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import structlog
from structlog.contextvars import (
    bind_contextvars,
    bound_contextvars,
    clear_contextvars,
    get_contextvars,
    unbind_contextvars,
)

from ..core.utils import redact_text


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v) for v in value)
    return value


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor that masks credentials in every event value.

    Connection strings are cache keys throughout QueryBridge and regularly end
    up in driver error text; they must never reach a log sink unredacted.
    """
    return {key: _redact_value(value) for key, value in event_dict.items()}


class LogContext:
    """Task-local context for log correlation and metadata.

    Example:
        >>> LogContext.set("request_id", "req_123")
        >>> LogContext.get_all()
        {'request_id': 'req_123'}
    """

    @staticmethod
    def set(key: str, value: Any) -> None:
        bind_contextvars(**{key: value})

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        return get_contextvars().get(key, default)

    @staticmethod
    def get_all() -> Dict[str, Any]:
        return dict(get_contextvars())

    @staticmethod
    def update(context: Dict[str, Any]) -> None:
        bind_contextvars(**context)

    @staticmethod
    def remove(*keys: str) -> None:
        unbind_contextvars(*keys)

    @staticmethod
    def clear() -> None:
        clear_contextvars()


class StructuredLogger:
    """Structured logger with task-local context and credential redaction.

    Attributes:
        name: Logger name

    Example:
        >>> logger = StructuredLogger("querybridge.registry")
        >>> pool_logger = logger.bind(backend="mysql")
        >>> pool_logger.info("Pool created", max_size=10)
    """

    def __init__(
        self,
        name: str,
        *,
        level: Optional[str] = None,
        bound: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Optional level for the underlying stdlib logger
            bound: Context included in every event from this logger
        """
        self.name = name
        self._logger = structlog.get_logger(name)
        self._stdlib_logger = logging.getLogger(name)
        self._bound: Dict[str, Any] = dict(bound or {})
        if level:
            self.set_level(level)

    def _prepare_event_dict(self, **kwargs: Any) -> Dict[str, Any]:
        """Merge task context, bound context and event data, then redact."""
        event_dict: Dict[str, Any] = {"logger": self.name}
        event_dict.update(LogContext.get_all())
        event_dict.update(self._bound)
        event_dict.update(kwargs)
        return redact_secrets(None, "", event_dict)

    @contextmanager
    def context(self, **context_data: Any) -> Generator[None, None, None]:
        """Add context to every log event emitted inside the block.

        Example:
            >>> with logger.context(request_id="abc"):
            ...     logger.info("Handling request")
        """
        with bound_contextvars(**context_data):
            yield

    def bind(self, **context_data: Any) -> "StructuredLogger":
        """Return a new logger whose events always include ``context_data``."""
        return StructuredLogger(self.name, bound={**self._bound, **context_data})

    def set_level(self, level: str) -> None:
        """Set the level of the underlying stdlib logger.

        Raises:
            ValueError: If the level name is unknown
        """
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            raise ValueError(f"Unknown log level: {level}")
        self._stdlib_logger.setLevel(log_level)

    def get_level(self) -> str:
        return logging.getLevelName(self._stdlib_logger.getEffectiveLevel())

    def get_context(self) -> Dict[str, Any]:
        """Context that would be attached to the next event."""
        return {**LogContext.get_all(), **self._bound}

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, **self._prepare_event_dict(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, **self._prepare_event_dict(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, **self._prepare_event_dict(**kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, **self._prepare_event_dict(**kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        self._logger.critical(message, **self._prepare_event_dict(**kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error with the active exception's traceback."""
        self._logger.error(message, exc_info=True, **self._prepare_event_dict(**kwargs))

    def __repr__(self) -> str:
        return f"StructuredLogger(name={self.name!r}, level={self.get_level()!r})"
