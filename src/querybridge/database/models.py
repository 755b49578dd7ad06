"""Database models for QueryBridge.

Classes:
    BackendKind: Closed set of supported database backends
    DocumentOperation: Allowed MongoDB operations
    SqlQuery: Normalized relational query
    DocumentQuery: Normalized MongoDB query
    QueryResult: Unified result envelope
    FieldDescriptor: One column or document field in a schema description
    SchemaResult: Schema description returned by the schema endpoint
    ConnectionTestResult: Outcome of a connection test
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..core.exceptions import ErrorCodes, ValidationError


class BackendKind(str, Enum):
    """Supported database backends."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGODB = "mongodb"

    @property
    def is_relational(self) -> bool:
        return self is not BackendKind.MONGODB

    @classmethod
    def detect(cls, connection_string: str) -> "BackendKind":
        """Infer the backend from the connection string scheme.

        Anything that is not recognizably MySQL or MongoDB is treated as
        PostgreSQL.
        """
        lowered = connection_string.strip().lower()
        if lowered.startswith(("mongodb://", "mongodb+srv://")):
            return cls.MONGODB
        if lowered.startswith("mysql://"):
            return cls.MYSQL
        return cls.POSTGRES

    @classmethod
    def resolve(cls, db_type: Optional[str], connection_string: str) -> "BackendKind":
        """Use an explicit backend name when given, else detect it.

        Args:
            db_type: Backend name supplied by the caller, if any
            connection_string: Connection string used for detection

        Returns:
            Resolved backend kind

        Raises:
            ValidationError: If ``db_type`` names an unsupported backend
        """
        if isinstance(db_type, BackendKind):
            return db_type
        if db_type is None or (isinstance(db_type, str) and not db_type.strip()):
            return cls.detect(connection_string)

        name = str(db_type).strip().lower()
        kind = _BACKEND_ALIASES.get(name)
        if kind is None:
            raise ValidationError(
                f"Unsupported database type: {db_type}",
                code=ErrorCodes.UNSUPPORTED_BACKEND,
                context={"db_type": db_type, "supported": [k.value for k in cls]},
            )
        return kind


_BACKEND_ALIASES: Dict[str, BackendKind] = {
    "postgres": BackendKind.POSTGRES,
    "postgresql": BackendKind.POSTGRES,
    "mysql": BackendKind.MYSQL,
    "mongodb": BackendKind.MONGODB,
    "mongo": BackendKind.MONGODB,
}


class DocumentOperation(str, Enum):
    """MongoDB operations accepted by the normalizer."""

    FIND = "find"
    FIND_ONE = "findOne"
    INSERT_ONE = "insertOne"
    INSERT_MANY = "insertMany"
    UPDATE_ONE = "updateOne"
    UPDATE_MANY = "updateMany"
    DELETE_ONE = "deleteOne"
    DELETE_MANY = "deleteMany"
    COUNT_DOCUMENTS = "countDocuments"
    AGGREGATE = "aggregate"

    @property
    def is_write(self) -> bool:
        return self in _WRITE_OPERATIONS


_WRITE_OPERATIONS = frozenset({
    DocumentOperation.INSERT_ONE,
    DocumentOperation.INSERT_MANY,
    DocumentOperation.UPDATE_ONE,
    DocumentOperation.UPDATE_MANY,
    DocumentOperation.DELETE_ONE,
    DocumentOperation.DELETE_MANY,
})


@dataclass(frozen=True)
class SqlQuery:
    """Trimmed, length-checked SQL text."""
    text: str

    @property
    def source(self) -> str:
        return self.text


@dataclass(frozen=True)
class DocumentQuery:
    """Validated MongoDB request."""
    collection: str
    operation: DocumentOperation
    filter: Dict[str, Any] = field(default_factory=dict)
    document: Optional[Dict[str, Any]] = None
    documents: Optional[List[Dict[str, Any]]] = None
    update: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    pipeline: Optional[List[Dict[str, Any]]] = None
    limit: Optional[int] = None
    raw: str = ""

    @property
    def source(self) -> str:
        return self.raw or f"{self.collection}.{self.operation.value}"


NormalizedQuery = Union[SqlQuery, DocumentQuery]


@dataclass
class QueryResult:
    """Unified result envelope returned for every backend.

    ``rows`` never holds more than the configured cap; ``total_rows`` is the
    number of rows the driver produced and ``has_more`` flags truncation.
    """
    rows: List[Dict[str, Any]]
    columns: List[str]
    row_count: int
    execution_time_ms: int
    has_more: bool = False
    total_rows: int = 0
    backend: Optional[BackendKind] = None
    success: bool = True

    def to_response(self) -> Dict[str, Any]:
        """Serialize to the ``/api/query`` response body."""
        return {
            "success": self.success,
            "rows": self.rows,
            "columns": self.columns,
            "rowCount": self.row_count,
            "executionTime": self.execution_time_ms,
            "dbType": self.backend.value if self.backend else None,
            "hasMore": self.has_more,
            "totalRows": self.total_rows,
        }


@dataclass
class FieldDescriptor:
    """Column or document field in a schema description.

    ``is_auto_generated`` is heuristic; see the introspection module.
    """
    name: str
    type: str
    nullable: bool = True
    is_primary_key: bool = False
    is_auto_generated: bool = False
    default: Optional[str] = None

    def to_dict(self, *, relational: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "isPrimaryKey": self.is_primary_key,
            "isAutoGenerated": self.is_auto_generated,
        }
        if relational:
            data["default"] = self.default
            data["excludeFromInsert"] = self.is_auto_generated
        return data


SchemaDescriptor = Dict[str, List[FieldDescriptor]]


def schema_to_dict(schema: SchemaDescriptor, backend: BackendKind) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize a schema descriptor for the ``/api/schema`` response."""
    return {
        name: [f.to_dict(relational=backend.is_relational) for f in fields]
        for name, fields in schema.items()
    }


@dataclass
class SchemaResult:
    """Schema description of one database."""
    backend: BackendKind
    tables: SchemaDescriptor

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "tables": schema_to_dict(self.tables, self.backend),
            "dbType": self.backend.value,
        }


@dataclass
class ConnectionTestResult:
    """Outcome of a successful connection test."""
    backend: BackendKind
    version: Optional[str]
    message: str = "Connection successful"
    success: bool = True

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "version": self.version,
            "dbType": self.backend.value,
        }
