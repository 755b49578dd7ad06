"""Result shape unification.

Turns raw driver rows into the ``QueryResult`` envelope shared by every
backend, converts values to JSON-safe types and builds error envelopes.

Functions:
    build_result: Cap rows, derive columns and counts
    to_jsonable: Convert a driver value to a JSON-safe value
    error_envelope: Error body for the ``/api/query`` endpoint
"""

import datetime
import decimal
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

from bson import Decimal128, ObjectId

from ..core.exceptions import QueryBridgeException
from ..core.utils import redact_text
from .models import BackendKind, QueryResult


def to_jsonable(value: Any) -> Any:
    """Convert a driver value into something ``json.dumps`` accepts.

    Identifiers and decimals become strings, temporal values become ISO-8601
    strings and binary values become hex. Containers are converted
    recursively.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (ObjectId, Decimal128, decimal.Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return str(value)


def build_result(
    rows: Sequence[Mapping[str, Any]],
    *,
    columns: Optional[Sequence[str]] = None,
    row_count: Optional[int] = None,
    elapsed_ms: float,
    max_rows: int,
    backend: BackendKind,
) -> QueryResult:
    """Build the unified result envelope.

    Args:
        rows: Every row the driver produced, in order
        columns: Column names from driver metadata, if available
        row_count: Affected or returned count reported by the driver
        elapsed_ms: Execution time in milliseconds
        max_rows: Row cap applied to the response
        backend: Backend that produced the rows

    Returns:
        QueryResult with at most ``max_rows`` rows
    """
    total_rows = len(rows)

    if columns:
        column_names = list(columns)
    elif rows:
        column_names = list(rows[0].keys())
    else:
        column_names = []

    capped: List[Dict[str, Any]] = [
        {str(k): to_jsonable(v) for k, v in row.items()} for row in rows[:max_rows]
    ]

    return QueryResult(
        rows=capped,
        columns=column_names,
        row_count=row_count if row_count is not None else total_rows,
        execution_time_ms=int(round(elapsed_ms)),
        has_more=total_rows > max_rows,
        total_rows=total_rows,
        backend=backend,
    )


def error_envelope(exc: QueryBridgeException, *, include_original: bool = False) -> Dict[str, Any]:
    """Build the failure body returned by the query endpoint.

    Args:
        exc: Classified error
        include_original: Attach the raw driver text as ``originalError``

    Returns:
        ``{success, error, errorCode[, originalError]}``
    """
    body: Dict[str, Any] = {
        "success": False,
        "error": exc.message,
        "errorCode": exc.code,
    }
    if include_original:
        body["originalError"] = redact_text(exc.original_error)
    return body
