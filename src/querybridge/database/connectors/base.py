"""Abstract backend adapter.

Every supported backend is driven through a ``BaseBackendAdapter``
subclass. The base class owns the parts that are identical across drivers:
the execution timeout race and the translation of driver exceptions into
the QueryBridge error taxonomy.
"""

import asyncio
import errno
import socket
import ssl
from abc import ABC, abstractmethod
from typing import Any, Awaitable, ClassVar, Dict, Optional

from ...config.models import PoolConfig, QueryConfig
from ...core.exceptions import (
    TIMEOUT_MESSAGE,
    PERMISSION_MESSAGE,
    ErrorCodes,
    NotFoundError,
    PermissionError,
    QueryBridgeException,
    QueryError,
    SyntaxError,
    connection_error,
)
from ...core.exceptions import ConnectionError as BackendConnectionError
from ...core.exceptions import TimeoutError as QueryTimeoutError
from ...core.utils import redact_connection_string, redact_text
from ...logging import get_logger
from ..handles import PooledHandle
from ..models import BackendKind, ConnectionTestResult, NormalizedQuery, QueryResult, SchemaDescriptor

CONNECTION_CODES = frozenset({
    ErrorCodes.CONNECTION_REFUSED,
    ErrorCodes.HOST_NOT_FOUND,
    ErrorCodes.AUTH_FAILED,
    ErrorCodes.SSL_ERROR,
    ErrorCodes.CONNECTION_TIMEOUT,
    ErrorCodes.CONNECTION_FAILED,
})

_HOST_NOT_FOUND_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "enotfound",
    "temporary failure in name resolution",
    "unknown mysql server host",
)


def _consume_outcome(task: "asyncio.Future[Any]") -> None:
    # Retrieve the late result so asyncio does not report it as unhandled.
    if not task.cancelled():
        task.exception()


class BaseBackendAdapter(ABC):
    """Shared interface and helpers for backend adapters.

    Attributes:
        kind: Backend this adapter serves
        display_name: Human-readable backend name
        evicts_on_failure: Whether the registry should drop a cached handle
            when an operation on it fails
    """

    kind: ClassVar[BackendKind]
    display_name: ClassVar[str] = "database"
    evicts_on_failure: ClassVar[bool] = False

    def __init__(self, pool_config: PoolConfig, query_config: QueryConfig) -> None:
        self.pool_config = pool_config
        self.query_config = query_config
        self.logger = get_logger(f"querybridge.connector.{self.kind.value}")

    # Lifecycle of a pooled client

    @abstractmethod
    async def create_client(self, connection_string: str) -> Any:
        """Open a pool or client for ``connection_string``.

        Raises:
            ConnectionError: If the backend cannot be reached
        """

    @abstractmethod
    async def close_client(self, client: Any) -> None:
        """Close a client previously returned by ``create_client``."""

    # Operations

    @abstractmethod
    async def execute(self, handle: PooledHandle, query: NormalizedQuery) -> QueryResult:
        """Run one normalized query and return the unified result."""

    @abstractmethod
    async def test_connection(self, connection_string: str) -> ConnectionTestResult:
        """Open a one-off connection, read the server version and close it."""

    @abstractmethod
    async def introspect_schema(self, handle: PooledHandle) -> SchemaDescriptor:
        """Describe the tables or collections reachable through ``handle``."""

    # Timeout race

    async def run_with_timeout(self, operation: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """Await ``operation`` for at most ``timeout`` seconds.

        On expiry the driver task is asked to cancel and the caller gets a
        ``TimeoutError`` immediately; the cancellation is not awaited.

        Args:
            operation: Driver coroutine
            timeout: Seconds to wait (defaults to ``query.timeout``)

        Returns:
            Result of ``operation``

        Raises:
            TimeoutError: If the operation did not finish in time
        """
        limit = self.query_config.timeout if timeout is None else timeout
        task = asyncio.ensure_future(operation)

        try:
            done, _ = await asyncio.wait({task}, timeout=limit)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        task.cancel()
        task.add_done_callback(_consume_outcome)
        self.logger.warning(
            "Operation exceeded timeout, cancellation requested",
            backend=self.kind.value,
            timeout_seconds=limit,
        )
        raise QueryTimeoutError(
            TIMEOUT_MESSAGE,
            context={"backend": self.kind.value, "timeout_seconds": limit},
        )

    # Error translation

    def classify_driver_error(self, exc: BaseException) -> Optional[str]:
        """Map a driver-specific signal (SQLSTATE, error number) to an error code.

        Returns ``None`` when the driver gives no usable signal; message
        heuristics are applied next.
        """
        return None

    def is_connection_failure(self, exc: BaseException) -> bool:
        """True if ``exc`` means the backend could not be reached."""
        return isinstance(exc, OSError)

    def connection_code(self, exc: BaseException) -> str:
        """Classify a connection failure into one of the connection codes."""
        code = self.classify_driver_error(exc)
        if code in CONNECTION_CODES:
            return code

        # SSLError is an OSError subclass, check it first.
        if isinstance(exc, ssl.SSLError):
            return ErrorCodes.SSL_ERROR
        if isinstance(exc, ConnectionRefusedError) or getattr(exc, "errno", None) == errno.ECONNREFUSED:
            return ErrorCodes.CONNECTION_REFUSED
        if isinstance(exc, socket.gaierror):
            return ErrorCodes.HOST_NOT_FOUND
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            return ErrorCodes.CONNECTION_TIMEOUT

        return connection_code_from_text(str(exc))

    def classify_connection_error(
        self, exc: BaseException, connection_string: str
    ) -> BackendConnectionError:
        """Wrap a failure to connect as a ``ConnectionError``."""
        if isinstance(exc, BackendConnectionError):
            return exc
        code = self.connection_code(exc)
        return connection_error(
            code,
            detail=redact_text(str(exc)) or type(exc).__name__,
            context=self._error_context(connection_string),
            cause=exc,
        )

    def translate_error(
        self, exc: BaseException, connection_string: Optional[str] = None
    ) -> QueryBridgeException:
        """Translate an execution failure into the error taxonomy.

        Driver-specific signals are consulted first, then connection
        failures, then message heuristics.
        """
        if isinstance(exc, QueryBridgeException):
            return exc

        code = self.classify_driver_error(exc)
        if code is None and isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            # Driver-side command timeouts.
            code = ErrorCodes.TIMEOUT
        if code is None and self.is_connection_failure(exc):
            code = self.connection_code(exc)
        detail = redact_text(str(exc)) or type(exc).__name__
        if code is None:
            code = _message_code(detail)

        context = self._error_context(connection_string)

        if code in CONNECTION_CODES:
            return connection_error(code, detail=detail, context=context, cause=exc)
        if code == ErrorCodes.TIMEOUT:
            return QueryTimeoutError(TIMEOUT_MESSAGE, context=context, cause=exc)
        if code == ErrorCodes.NOT_FOUND:
            return NotFoundError(f"Table or collection not found: {detail}", context=context, cause=exc)
        if code == ErrorCodes.SYNTAX_ERROR:
            return SyntaxError(f"SQL syntax error: {detail}", context=context, cause=exc)
        if code == ErrorCodes.PERMISSION_DENIED:
            return PermissionError(PERMISSION_MESSAGE, context=context, cause=exc)
        return QueryError(detail, context=context, cause=exc)

    def _error_context(self, connection_string: Optional[str]) -> Dict[str, Any]:
        context: Dict[str, Any] = {"backend": self.kind.value}
        if connection_string:
            context["target"] = redact_connection_string(connection_string)
        return context

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r})"


def connection_code_from_text(text: str) -> str:
    """Classify a connection failure from its message alone."""
    lowered = text.lower()
    if "connection refused" in lowered or "econnrefused" in lowered or "connect call failed" in lowered:
        return ErrorCodes.CONNECTION_REFUSED
    if any(hint in lowered for hint in _HOST_NOT_FOUND_HINTS):
        return ErrorCodes.HOST_NOT_FOUND
    if "authentication" in lowered or "password" in lowered:
        return ErrorCodes.AUTH_FAILED
    if "ssl" in lowered:
        return ErrorCodes.SSL_ERROR
    if "timed out" in lowered or "timeout" in lowered:
        return ErrorCodes.CONNECTION_TIMEOUT
    return ErrorCodes.CONNECTION_FAILED


def _message_code(text: str) -> str:
    lowered = text.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return ErrorCodes.TIMEOUT
    if "does not exist" in lowered or "doesn't exist" in lowered:
        return ErrorCodes.NOT_FOUND
    if "syntax error" in lowered or "error in your sql syntax" in lowered:
        return ErrorCodes.SYNTAX_ERROR
    if "permission denied" in lowered or "not authorized" in lowered:
        return ErrorCodes.PERMISSION_DENIED
    return ErrorCodes.QUERY_ERROR


def status_row_count(status: Optional[str]) -> int:
    """Affected row count from a command status such as ``UPDATE 5``."""
    if not status:
        return 0
    last = status.split()[-1]
    return int(last) if last.isdigit() else 0
