"""Structured log events for connection and query lifecycles.

Connection strings are redacted and queries are reduced to a short hash plus
a truncated preview before anything is logged.

Functions:
    log_connection_event: Pool creation, eviction and close events
    log_query_execution: Terminal state of one query execution
"""

from typing import Any, Optional

from ..core.utils import compute_hash, redact_connection_string, truncate_string
from .factory import get_logger

QUERY_PREVIEW_LENGTH = 100

_logger = get_logger("querybridge.events")


def query_preview(query: str) -> str:
    """Single-line, truncated rendition of a query for log output."""
    return truncate_string(" ".join(query.split()), QUERY_PREVIEW_LENGTH)


def log_connection_event(
    connection_string: str,
    operation: str,
    *,
    backend: str,
    success: bool = True,
    error: Optional[str] = None,
    **details: Any,
) -> None:
    """Log a pooled-handle lifecycle event.

    Args:
        connection_string: Connection string (will be redacted)
        operation: Event name such as ``create``, ``evict`` or ``close``
        backend: Backend kind value
        success: Whether the operation succeeded
        error: Error message if failed
        **details: Additional structured data
    """
    fields = {
        "event_type": "connection",
        "operation": operation,
        "backend": backend,
        "target": redact_connection_string(connection_string),
        "success": success,
        **details,
    }
    if error:
        fields["error"] = error

    if success:
        _logger.info("Connection event", **fields)
    else:
        _logger.error("Connection event", **fields)


def log_query_execution(
    query: str,
    *,
    backend: str,
    state: str,
    row_count: int = 0,
    duration_ms: float = 0.0,
    error_code: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log the terminal state of a query execution.

    Args:
        query: Query text (hashed and truncated, never logged in full)
        backend: Backend kind value
        state: ``completed``, ``timed_out`` or ``failed``
        row_count: Rows returned or affected
        duration_ms: Execution time in milliseconds
        error_code: Error code when the query failed
        error: Error message when the query failed
    """
    fields = {
        "event_type": "query_execution",
        "backend": backend,
        "state": state,
        "query_hash": compute_hash(query),
        "query_preview": query_preview(query),
        "row_count": row_count,
        "duration_ms": round(duration_ms, 3),
    }
    if error_code:
        fields["error_code"] = error_code
    if error:
        fields["error"] = error

    if state == "completed":
        _logger.info("Query execution", **fields)
    else:
        _logger.warning("Query execution", **fields)
