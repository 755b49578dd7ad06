"""Query normalization.

Validates and cleans a raw query before it reaches any adapter. Relational
queries are trimmed and length-checked only; MongoDB queries are parsed from
JSON and checked against the operation allow-list and per-operation payload
rules. Every failure raises ``ValidationError``.
"""

import json
from typing import Any, Dict

from ..core.exceptions import ValidationError
from .models import BackendKind, DocumentOperation, DocumentQuery, NormalizedQuery, SqlQuery

DEFAULT_MAX_QUERY_LENGTH = 50000


def normalize_query(
    raw: Any,
    kind: BackendKind,
    *,
    max_length: int = DEFAULT_MAX_QUERY_LENGTH,
) -> NormalizedQuery:
    """Validate and normalize a raw query for ``kind``.

    Args:
        raw: Query as received from the caller
        kind: Target backend
        max_length: Maximum trimmed length in characters

    Returns:
        ``SqlQuery`` for relational backends, ``DocumentQuery`` for MongoDB

    Raises:
        ValidationError: If the query is empty, too long or malformed
    """
    if not isinstance(raw, str):
        raise ValidationError(
            "Query must be a string",
            context={"received_type": type(raw).__name__},
        )

    text = raw.strip()
    if not text:
        raise ValidationError("Query cannot be empty")

    if len(text) > max_length:
        raise ValidationError(
            f"Query exceeds maximum length of {max_length} characters",
            context={"length": len(text), "max_length": max_length},
        )

    if kind is BackendKind.MONGODB:
        return _normalize_document_query(text)
    return SqlQuery(text=text)


def _normalize_document_query(text: str) -> DocumentQuery:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "Invalid MongoDB query: must be valid JSON",
            context={"position": e.pos},
            cause=e,
        ) from e

    if not isinstance(payload, dict):
        raise ValidationError("Invalid MongoDB query: must be a JSON object")

    collection = payload.get("collection")
    if not isinstance(collection, str) or not collection.strip():
        raise ValidationError("Invalid MongoDB query: must include a collection name")

    operation = _parse_operation(payload.get("operation", DocumentOperation.FIND.value))

    query_filter = payload.get("filter", {})
    if query_filter is None:
        query_filter = {}
    if not isinstance(query_filter, dict):
        raise ValidationError("Invalid MongoDB query: filter must be an object")

    limit = payload.get("limit")
    # bool is an int subclass and is not a meaningful limit
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise ValidationError(
            "Invalid MongoDB query: limit must be a positive integer",
            context={"limit": limit},
        )

    fields: Dict[str, Any] = {}

    if operation is DocumentOperation.INSERT_ONE:
        document = payload.get("document")
        if not isinstance(document, dict):
            raise ValidationError("Invalid MongoDB query: insertOne requires a document object")
        fields["document"] = document

    elif operation is DocumentOperation.INSERT_MANY:
        documents = payload.get("documents")
        if (
            not isinstance(documents, list)
            or not documents
            or not all(isinstance(doc, dict) for doc in documents)
        ):
            raise ValidationError(
                "Invalid MongoDB query: insertMany requires a non-empty documents array"
            )
        fields["documents"] = documents

    elif operation in (DocumentOperation.UPDATE_ONE, DocumentOperation.UPDATE_MANY):
        update = payload.get("update")
        if not isinstance(update, (dict, list)) or not update:
            raise ValidationError(
                f"Invalid MongoDB query: {operation.value} requires an update object or pipeline"
            )
        fields["update"] = update

    elif operation is DocumentOperation.AGGREGATE:
        pipeline = payload.get("pipeline")
        if not isinstance(pipeline, list):
            raise ValidationError("Invalid MongoDB query: aggregate requires a pipeline array")
        fields["pipeline"] = pipeline

    return DocumentQuery(
        collection=collection.strip(),
        operation=operation,
        filter=query_filter,
        limit=limit,
        raw=text,
        **fields,
    )


def _parse_operation(value: Any) -> DocumentOperation:
    try:
        return DocumentOperation(value)
    except ValueError:
        allowed = [op.value for op in DocumentOperation]
        raise ValidationError(
            f"Unsupported MongoDB operation: {value}",
            context={"operation": value, "allowed": allowed},
        ) from None
