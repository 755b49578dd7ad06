"""
QueryBridge database layer.

Runs queries against several database backends behind one result shape.

Key Features:
- Lazily created, cached connection pools per connection string
- Query validation before any driver call
- Hard execution timeouts
- Unified result envelope and error taxonomy
- Schema introspection for AI prompt context

Supported Backends:
- PostgreSQL (asyncpg)
- MySQL (aiomysql)
- MongoDB (pymongo asyncio client)
"""

from .connectors import BaseBackendAdapter, MongoDBAdapter, MySQLAdapter, PostgreSQLAdapter
from .handles import PooledHandle
from .models import (
    BackendKind,
    ConnectionTestResult,
    DocumentOperation,
    DocumentQuery,
    FieldDescriptor,
    QueryResult,
    SchemaResult,
    SqlQuery,
)
from .normalizer import normalize_query
from .registry import ConnectionRegistry, default_adapters
from .service import QueryService
from .unifier import build_result, error_envelope, to_jsonable

__all__ = [
    "BackendKind",
    "BaseBackendAdapter",
    "ConnectionRegistry",
    "ConnectionTestResult",
    "DocumentOperation",
    "DocumentQuery",
    "FieldDescriptor",
    "MongoDBAdapter",
    "MySQLAdapter",
    "PooledHandle",
    "PostgreSQLAdapter",
    "QueryResult",
    "QueryService",
    "SchemaResult",
    "SqlQuery",
    "build_result",
    "default_adapters",
    "error_envelope",
    "normalize_query",
    "to_jsonable",
]
