"""Prompt context blocks built from schema descriptions and chat history.

Accepts either :class:`FieldDescriptor` objects or their serialized
``/api/schema`` form (camelCase dictionaries), so a client can pass the
schema response straight back in.
"""

from typing import Any, List, Mapping, Optional, Sequence, Union

from ..database.models import BackendKind, FieldDescriptor
from .sanitize import BackendLike, is_document_backend

FieldLike = Union[FieldDescriptor, Mapping[str, Any]]
SchemaLike = Mapping[str, Sequence[FieldLike]]

DEFAULT_SUGGESTIONS = [
    "Show me all tables",
    "Count all records",
    "Get the latest 10 entries",
]

_ATTRIBUTE_KEYS = {
    "name": "name",
    "type": "type",
    "nullable": "nullable",
    "is_primary_key": "isPrimaryKey",
    "is_auto_generated": "isAutoGenerated",
}


def _field(item: FieldLike, attribute: str, default: Any = None) -> Any:
    if isinstance(item, FieldDescriptor):
        return getattr(item, attribute)
    return item.get(_ATTRIBUTE_KEYS[attribute], default)


def _is_auto(item: FieldLike) -> bool:
    if isinstance(item, FieldDescriptor):
        return item.is_auto_generated
    return bool(item.get("excludeFromInsert") or item.get("isAutoGenerated"))


def build_schema_context(schema: Optional[SchemaLike], backend: BackendLike = BackendKind.POSTGRES) -> str:
    """Render the DATABASE SCHEMA block of a query generation prompt.

    Relational columns are tagged ``[PK]``, ``[AUTO]`` and ``[NOT NULL]``
    and each table ends with the columns an INSERT should name. MongoDB
    collections are listed as ``name: [field(type), ...]``.

    Args:
        schema: Schema description keyed by table or collection name
        backend: Backend the schema belongs to

    Returns:
        The prompt block, or an empty string when there is no schema
    """
    if not schema:
        return ""

    lines = ["", "", "DATABASE SCHEMA:"]

    if is_document_backend(backend):
        lines.append("Collections and sample fields:")
        lines.append("(Note: _id field is auto-generated by MongoDB, do NOT include in insertions)")
        for collection, fields in schema.items():
            rendered = ", ".join(f"{_field(f, 'name')}({_field(f, 'type')})" for f in fields)
            lines.append(f"- {collection}: [{rendered}]")
        return "\n".join(lines) + "\n"

    lines.append("Tables and columns:")
    lines.append("(Columns marked with [AUTO] are auto-generated - do NOT include them in INSERT statements)")
    lines.append("")

    for table, columns in schema.items():
        lines.append(f"TABLE: {table}")
        insertable = []
        for column in columns:
            auto = _is_auto(column)
            tags = ""
            if _field(column, "is_primary_key", False):
                tags += " [PK]"
            if auto:
                tags += " [AUTO]"
            if not _field(column, "nullable", True):
                tags += " [NOT NULL]"
            lines.append(f"  - {_field(column, 'name')} ({_field(column, 'type')}){tags}")
            if not auto:
                insertable.append(_field(column, "name"))

        if insertable:
            lines.append(f"  -> For INSERT, use only: {', '.join(insertable)}")
        lines.append("")

    return "\n".join(lines) + "\n"


def build_conversation_context(history: Optional[Sequence[Mapping[str, Any]]], max_history: int = 5) -> str:
    """Render the PREVIOUS CONVERSATION block from chat history.

    Only user messages and assistant messages carrying a generated query
    (``sql``) are kept, and of those the last ``2 * max_history``.

    Args:
        history: Messages with ``role``, ``content`` and optionally ``sql``
            and ``result`` (whose ``rowCount`` is reported)
        max_history: Number of question/answer exchanges to keep

    Returns:
        The prompt block, or an empty string when nothing is relevant
    """
    if not history:
        return ""

    relevant = [
        message for message in history
        if message.get("role") == "user"
        or (message.get("role") == "assistant" and message.get("sql"))
    ]
    relevant = relevant[-max_history * 2:] if max_history > 0 else []
    if not relevant:
        return ""

    lines = ["", "", "PREVIOUS CONVERSATION:"]
    for message in relevant:
        if message.get("role") == "user":
            lines.append(f'User asked: "{message.get("content", "")}"')
            continue

        lines.append(f"Generated query: {message['sql']}")
        result = message.get("result")
        if isinstance(result, Mapping) and result.get("rowCount") is not None:
            lines.append(f"Result: {result['rowCount']} rows returned")
        lines.append("")

    return "\n".join(lines) + "\n"


def generate_query_suggestions(schema: Optional[SchemaLike]) -> List[str]:
    """Starter questions for an empty chat, at most five."""
    if not schema:
        return list(DEFAULT_SUGGESTIONS)

    tables = list(schema)
    first_table = tables[0]
    suggestions = [
        f"Show all data from {first_table}",
        f"Count records in {first_table}",
    ]

    columns = schema[first_table]
    if columns:
        suggestions.append(f"Get unique {_field(columns[0], 'name')} values from {first_table}")
    if len(tables) > 1:
        suggestions.append("Show table relationships")

    return suggestions[:5]

