"""QueryBridge exception hierarchy.

This module defines the error taxonomy used across QueryBridge. Every error
that can reach an HTTP caller is a ``QueryBridgeException`` subclass carrying
a human-readable message, a machine-readable code and optional context, so the
API layer can build a structured envelope without inspecting driver errors.

Classes:
    QueryBridgeException: Base exception for all QueryBridge operations
    ValidationError: Malformed, oversized or unsupported query input
    ConnectionError: Backend unreachable, authentication or SSL failure
    TimeoutError: Execution exceeded the configured bound
    NotFoundError: Referenced table, column or collection is absent
    SyntaxError: Backend rejected the query grammar
    PermissionError: Backend denied the operation
    QueryError: Catch-all execution failure

Example:
    >>> try:
    ...     await service.execute(connection_string, query)
    ... except QueryBridgeException as e:
    ...     logger.error("Query failed", error_code=e.code, context=e.context)
"""

from typing import Any, Dict, Optional


class QueryBridgeException(Exception):
    """Base exception for all QueryBridge operations.

    Attributes:
        message: Human-readable, user-facing error description
        code: Unique error code for categorization
        context: Additional context information about the error
        cause: Original exception that caused this error (if any)

    Example:
        >>> raise QueryBridgeException(
        ...     "Operation failed",
        ...     code="OPERATION_FAILED",
        ...     context={"backend": "postgres"}
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        """Initialize QueryBridge exception.

        Args:
            message: Human-readable error description
            code: Unique error code for categorization (defaults to class name)
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message: str = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[BaseException] = cause

    @property
    def original_error(self) -> str:
        """Raw text of the underlying driver error, or the message itself."""
        if self.cause is not None:
            return str(self.cause)
        return self.message

    def __str__(self) -> str:
        """Return formatted error message with code."""
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r}, "
            f"cause={self.cause!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(QueryBridgeException):
    """Configuration could not be loaded or failed validation."""
    pass


class ValidationError(QueryBridgeException):
    """Query input failed validation.

    Raised for empty, non-string, oversized or structurally invalid queries
    and for unsupported backend types. A ValidationError is always raised
    before any backend call is made.
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.VALIDATION_ERROR)
        super().__init__(message, **kwargs)


class ConnectionError(QueryBridgeException):
    """Backend connection errors.

    The code is one of the connection kinds in ``ErrorCodes``: refused, host
    not found, authentication failed, SSL error, connect timeout or a generic
    connection failure.
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.CONNECTION_FAILED)
        super().__init__(message, **kwargs)


class TimeoutError(QueryBridgeException):
    """Query execution exceeded the configured timeout."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.TIMEOUT)
        super().__init__(message, **kwargs)


class NotFoundError(QueryBridgeException):
    """Referenced table, column or collection does not exist."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.NOT_FOUND)
        super().__init__(message, **kwargs)


class SyntaxError(QueryBridgeException):
    """Backend rejected the query grammar."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.SYNTAX_ERROR)
        super().__init__(message, **kwargs)


class PermissionError(QueryBridgeException):
    """Backend denied the operation for the connected user."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.PERMISSION_DENIED)
        super().__init__(message, **kwargs)


class QueryError(QueryBridgeException):
    """Query execution failed for a reason outside the other categories."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", ErrorCodes.QUERY_ERROR)
        super().__init__(message, **kwargs)


class ErrorCodes:
    """Error codes surfaced to API callers as ``errorCode``."""

    # Input
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNSUPPORTED_BACKEND = "UNSUPPORTED_BACKEND"

    # Connection
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    HOST_NOT_FOUND = "HOST_NOT_FOUND"
    AUTH_FAILED = "AUTH_FAILED"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    CONNECTION_FAILED = "CONNECTION_FAILED"

    # Execution
    TIMEOUT = "TIMEOUT"
    NOT_FOUND = "NOT_FOUND"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    QUERY_ERROR = "QUERY_ERROR"

    # Configuration and lifecycle
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    COMPONENT_INITIALIZATION_FAILED = "COMPONENT_INITIALIZATION_FAILED"
    COMPONENT_CLEANUP_FAILED = "COMPONENT_CLEANUP_FAILED"


# User-facing messages for each connection failure kind.
CONNECTION_MESSAGES: Dict[str, str] = {
    ErrorCodes.CONNECTION_REFUSED: (
        "Connection refused. Check if the database server is running and the host/port are correct."
    ),
    ErrorCodes.HOST_NOT_FOUND: "Host not found. Check the hostname in your connection string.",
    ErrorCodes.AUTH_FAILED: "Authentication failed. Check your username and password.",
    ErrorCodes.SSL_ERROR: (
        "SSL connection error. Try adding ?sslmode=require to your connection string."
    ),
    ErrorCodes.CONNECTION_TIMEOUT: (
        "Connection timed out. Check that the host is reachable from this server."
    ),
}

TIMEOUT_MESSAGE = "Query timed out. Try a simpler query or add filters."
PERMISSION_MESSAGE = "Permission denied. Your database user may not have access to this table."


def connection_error(
    code: str,
    *,
    detail: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    cause: Optional[BaseException] = None,
) -> ConnectionError:
    """Create a ConnectionError with the standard message for its kind.

    Args:
        code: One of the connection codes in ``ErrorCodes``
        detail: Driver text used when the code has no standard message
        context: Additional context information
        cause: Original driver exception

    Returns:
        ConnectionError ready to raise
    """
    message = CONNECTION_MESSAGES.get(code)
    if message is None:
        message = f"Connection failed: {detail}" if detail else "Connection failed"
    return ConnectionError(message, code=code, context=context, cause=cause)
