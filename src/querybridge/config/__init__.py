"""QueryBridge configuration management.

Example:
    >>> from querybridge.config import load_config
    >>> config = load_config("querybridge.yaml")
    >>> config.pool.max_size
    10
"""

from .models import (
    AppConfig,
    BaseConfig,
    LoggingConfig,
    PoolConfig,
    QueryConfig,
    ServerConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "BaseConfig",
    "LoggingConfig",
    "PoolConfig",
    "QueryConfig",
    "ServerConfig",
    "load_config",
]
