"""QueryBridge core: exception taxonomy, shared utilities and component bases.

``AsyncComponent`` lives in :mod:`querybridge.core.base` and is imported from
there directly; it depends on the logging package, which itself depends on
this package's utilities.
"""

from .exceptions import (
    CONNECTION_MESSAGES,
    ConfigurationError,
    ConnectionError,
    ErrorCodes,
    NotFoundError,
    PermissionError,
    QueryBridgeException,
    QueryError,
    SyntaxError,
    TimeoutError,
    ValidationError,
    connection_error,
)
from .utils import (
    compute_hash,
    redact_connection_string,
    redact_text,
    truncate_string,
    utc_timestamp,
)

__all__ = [
    "CONNECTION_MESSAGES",
    "ConfigurationError",
    "ConnectionError",
    "ErrorCodes",
    "NotFoundError",
    "PermissionError",
    "QueryBridgeException",
    "QueryError",
    "SyntaxError",
    "TimeoutError",
    "ValidationError",
    "connection_error",
    "compute_hash",
    "redact_connection_string",
    "redact_text",
    "truncate_string",
    "utc_timestamp",
]
