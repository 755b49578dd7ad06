"""QueryBridge logging system.

Structured logging on top of structlog with task-local context, credential
redaction, performance timing and connection/query lifecycle events.

Example:
    >>> from querybridge.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Registry initialized", max_size=10)
"""

from .factory import (
    LoggerFactory,
    configure_logging,
    get_factory,
    get_logger,
    get_performance_logger,
    shutdown_logging,
)
from .performance import OperationStats, PerformanceLogger, TimingContext
from .structured import LogContext, StructuredLogger, redact_secrets

__all__ = [
    "LogContext",
    "LoggerFactory",
    "OperationStats",
    "PerformanceLogger",
    "StructuredLogger",
    "TimingContext",
    "configure_logging",
    "get_factory",
    "get_logger",
    "get_performance_logger",
    "redact_secrets",
    "shutdown_logging",
]
