"""Logger factory and configuration for QueryBridge.

Classes:
    LoggerFactory: Creates loggers and configures structlog and stdlib logging

Functions:
    configure_logging: Configure the logging system globally
    get_logger: Get a cached StructuredLogger
    get_performance_logger: Get a cached PerformanceLogger
    get_factory: Access the global factory
    shutdown_logging: Flush handlers and restore defaults

Example:
    >>> from querybridge.logging import configure_logging, get_logger
    >>> configure_logging(LoggingConfig(level="DEBUG", format="text"))
    >>> logger = get_logger(__name__)
    >>> logger.info("Server starting", port=3001)
"""

import logging
from typing import Any, Dict, Optional

import structlog

from ..config.models import LoggingConfig
from .formatters import get_formatter, shared_processors
from .handlers import ConsoleHandler, RotatingFileHandler
from .performance import PerformanceLogger
from .structured import StructuredLogger

# Third-party loggers that are too chatty at INFO.
QUIET_LOGGERS = ("uvicorn.access", "asyncio", "pymongo")


class LoggerFactory:
    """Factory for creating and configuring QueryBridge loggers.

    Loggers are usable before ``configure`` is called: structlog falls back to
    its defaults, and tests install their own capture configuration.

    Example:
        >>> factory = LoggerFactory()
        >>> factory.configure(LoggingConfig(format="json"))
        >>> logger = factory.get_logger("querybridge.registry")
    """

    def __init__(self) -> None:
        self.config: LoggingConfig = LoggingConfig()
        self.initialized = False
        self._loggers: Dict[str, StructuredLogger] = {}
        self._performance_loggers: Dict[str, PerformanceLogger] = {}
        self._handlers: list = []

    def configure(self, config: LoggingConfig) -> None:
        """Install handlers and the structlog pipeline.

        Calling it again replaces the previous configuration.

        Args:
            config: Logging configuration
        """
        self.config = config
        self._configure_stdlib_logging()
        self._configure_structlog()
        self.initialized = True

    def _configure_stdlib_logging(self) -> None:
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        level = getattr(logging, self.config.level)
        root_logger.setLevel(level)
        formatter = get_formatter(self.config.format)

        if self.config.console_output:
            console_handler = ConsoleHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            self._handlers.append(console_handler)

        if self.config.file_path is not None:
            file_handler = RotatingFileHandler(
                self.config.file_path,
                maxBytes=self.config.max_file_size,
                backupCount=self.config.backup_count,
            )
            file_handler.setLevel(level)
            # Files are always JSON so they can be shipped as-is.
            file_handler.setFormatter(get_formatter("json"))
            self._handlers.append(file_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    def _configure_structlog(self) -> None:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *shared_processors(),
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str) -> StructuredLogger:
        """Get or create a structured logger.

        Args:
            name: Logger name (typically module name)

        Returns:
            StructuredLogger instance
        """
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name)
        return self._loggers[name]

    def get_performance_logger(self, name: str, *, auto_log: bool = True) -> PerformanceLogger:
        """Get or create a performance logger.

        Args:
            name: Logger name
            auto_log: Whether to automatically log timing results

        Returns:
            PerformanceLogger instance
        """
        cache_key = f"{name}_{auto_log}"
        if cache_key not in self._performance_loggers:
            self._performance_loggers[cache_key] = PerformanceLogger(
                name=name,
                auto_log=auto_log,
                logger=self.get_logger(f"perf.{name}"),
            )
        return self._performance_loggers[cache_key]

    def get_logger_info(self) -> Dict[str, Any]:
        """Describe the active configuration, for diagnostics."""
        return {
            "config": self.config.to_dict(),
            "initialized": self.initialized,
            "loggers": sorted(self._loggers),
            "performance_loggers": sorted(self._performance_loggers),
            "handlers": [type(handler).__name__ for handler in self._handlers],
        }

    def shutdown(self) -> None:
        """Remove installed handlers and restore structlog defaults."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            handler.flush()
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._loggers.clear()
        self._performance_loggers.clear()
        if self.initialized:
            structlog.reset_defaults()
        self.initialized = False

    def __repr__(self) -> str:
        return (
            f"LoggerFactory(level={self.config.level!r}, "
            f"format={self.config.format!r}, initialized={self.initialized})"
        )


_global_factory = LoggerFactory()


def configure_logging(config: Optional[LoggingConfig] = None, **overrides: Any) -> None:
    """Configure QueryBridge logging globally.

    Args:
        config: Logging configuration (defaults to ``LoggingConfig()``)
        **overrides: Field overrides applied on top of ``config``

    Example:
        >>> configure_logging(level="DEBUG", format="text")
    """
    base = config or LoggingConfig()
    if overrides:
        base = base.update_from_dict(overrides)
    _global_factory.configure(base)


def get_logger(name: str) -> StructuredLogger:
    """Get or create a structured logger using the global factory.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Pool created", backend="postgres")
    """
    return _global_factory.get_logger(name)


def get_performance_logger(name: str, *, auto_log: bool = True) -> PerformanceLogger:
    """Get or create a performance logger using the global factory.

    Example:
        >>> perf_logger = get_performance_logger("querybridge.service")
        >>> with perf_logger.measure("query_execution"):
        ...     result = await adapter.execute(handle, query)
    """
    return _global_factory.get_performance_logger(name, auto_log=auto_log)


def get_factory() -> LoggerFactory:
    return _global_factory


def shutdown_logging() -> None:
    """Shut down the global logging configuration."""
    _global_factory.shutdown()
