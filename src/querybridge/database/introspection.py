"""Schema introspection helpers.

Pure functions that turn catalog rows and sampled documents into
``FieldDescriptor`` lists. The backend adapters run the catalog queries and
hand the raw rows to these functions.

The auto-generated detection is a best-effort heuristic. It decides which
columns are left out of AI-generated INSERT statements, so it errs on the
side of flagging a column that has any server-side default.
"""

import datetime
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from bson import ObjectId

from .models import FieldDescriptor, SchemaDescriptor


def _yes(value: Any) -> bool:
    return isinstance(value, str) and value.upper() == "YES"


def classify_postgres_column(row: Mapping[str, Any]) -> FieldDescriptor:
    """Build a descriptor from one PostgreSQL catalog row.

    Expects the columns selected by ``POSTGRES_SCHEMA_QUERY``.
    """
    default = row.get("column_default")
    data_type = row.get("data_type") or ""
    is_primary_key = bool(row.get("is_primary_key"))
    default_text = default.lower() if isinstance(default, str) else ""

    is_auto_generated = (
        default is not None
        or _yes(row.get("is_identity"))
        or (row.get("is_generated") or "").upper() == "ALWAYS"
        or default_text.startswith("nextval(")
        or (data_type == "uuid" and "uuid" in default_text)
        or (is_primary_key and default is not None)
    )

    return FieldDescriptor(
        name=row["column_name"],
        type=data_type,
        nullable=_yes(row.get("is_nullable")),
        is_primary_key=is_primary_key,
        is_auto_generated=is_auto_generated,
        default=default,
    )


def classify_mysql_column(row: Mapping[str, Any]) -> FieldDescriptor:
    """Build a descriptor from one MySQL ``information_schema.COLUMNS`` row."""
    extra = (row.get("extra") or "").lower()
    is_primary_key = row.get("column_key") == "PRI"

    is_auto_generated = (
        "auto_increment" in extra
        or "virtual generated" in extra
        or "stored generated" in extra
        or (is_primary_key and "default_generated" in extra)
    )

    default = row.get("column_default")
    return FieldDescriptor(
        name=row["column_name"],
        type=row.get("data_type") or "",
        nullable=_yes(row.get("is_nullable")),
        is_primary_key=is_primary_key,
        is_auto_generated=is_auto_generated,
        default=None if default is None else str(default),
    )


def group_columns_by_table(
    rows: Iterable[Mapping[str, Any]],
    classify,
) -> SchemaDescriptor:
    """Group catalog rows by ``table_name`` preserving catalog order."""
    tables: SchemaDescriptor = {}
    for row in rows:
        tables.setdefault(row["table_name"], []).append(classify(row))
    return tables


def document_value_type(value: Any) -> str:
    """Name the JSON-ish type of a sampled document value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, (datetime.datetime, datetime.date)):
        return "date"
    if isinstance(value, ObjectId):
        return "objectId"
    return "object"


def infer_document_fields(documents: Sequence[Mapping[str, Any]]) -> List[FieldDescriptor]:
    """Merge the fields observed across sampled documents.

    The first observed type of a field wins and ``_id`` is left out. An empty
    sample yields an empty list.
    """
    fields: Dict[str, FieldDescriptor] = {}
    for document in documents:
        for name, value in document.items():
            if name == "_id" or name in fields:
                continue
            fields[name] = FieldDescriptor(name=name, type=document_value_type(value))
    return list(fields.values())
