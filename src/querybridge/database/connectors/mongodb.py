"""MongoDB adapter built on pymongo's asyncio client.

Queries arrive as ``DocumentQuery`` objects and are dispatched on their
operation name. Every driver call runs under ``pymongo.timeout`` so an
abandoned operation is also bounded inside the driver.
"""

import time
from typing import Any, Dict, List, Optional

import pymongo
from pymongo import AsyncMongoClient, monitoring
from pymongo.errors import (
    ConnectionFailure,
    ExecutionTimeout,
    NetworkTimeout,
    OperationFailure,
    PyMongoError,
)

from ...core.exceptions import ErrorCodes, QueryBridgeException
from ...core.utils import redact_text
from ...logging import StructuredLogger
from ..handles import PooledHandle
from ..introspection import infer_document_fields
from ..models import (
    BackendKind,
    ConnectionTestResult,
    DocumentOperation,
    DocumentQuery,
    QueryResult,
    SchemaDescriptor,
)
from ..unifier import build_result
from .base import BaseBackendAdapter

DEFAULT_DATABASE = "test"

# Server error code -> error code
MONGO_ERROR_CODES = {
    13: ErrorCodes.PERMISSION_DENIED,  # Unauthorized
    18: ErrorCodes.AUTH_FAILED,  # AuthenticationFailed
    26: ErrorCodes.NOT_FOUND,  # NamespaceNotFound
    50: ErrorCodes.TIMEOUT,  # MaxTimeMSExpired
    9: ErrorCodes.SYNTAX_ERROR,  # FailedToParse
}


class ServerErrorListener(monitoring.ServerHeartbeatListener):
    """Logs failed server heartbeats of a pooled client.

    Failures come from pymongo's background server monitors and are only
    logged, never raised.
    """

    def __init__(self, logger: StructuredLogger) -> None:
        self.logger = logger

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        pass

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        host, port = event.connection_id
        self.logger.warning(
            "MongoDB server heartbeat failed",
            host=host,
            port=port,
            error=redact_text(str(event.reply)),
        )


def fold_write_count(meta: Dict[str, Any]) -> int:
    """Collapse a write result into a single row count.

    The first non-zero of modifiedCount, deletedCount and insertedCount
    wins; otherwise an inserted id counts as one row.
    """
    for key in ("modifiedCount", "deletedCount", "insertedCount"):
        if meta.get(key):
            return int(meta[key])
    return 1 if meta.get("insertedId") is not None else 0


class MongoDBAdapter(BaseBackendAdapter):
    """Runs document queries through an ``AsyncMongoClient``.

    A failed operation invalidates the cached client so the next request
    reconnects from scratch.
    """

    kind = BackendKind.MONGODB
    display_name = "MongoDB"
    evicts_on_failure = True

    def _client_options(self) -> Dict[str, Any]:
        return {
            "serverSelectionTimeoutMS": int(self.query_config.mongo_server_selection_timeout * 1000),
            "socketTimeoutMS": int(self.query_config.mongo_socket_timeout * 1000),
            "connectTimeoutMS": int(self.pool_config.connect_timeout * 1000),
            "maxPoolSize": self.pool_config.max_size,
            "maxIdleTimeMS": int(self.pool_config.idle_timeout * 1000),
            "event_listeners": [ServerErrorListener(self.logger)],
        }

    async def create_client(self, connection_string: str) -> AsyncMongoClient:
        client: Optional[AsyncMongoClient] = None
        try:
            client = AsyncMongoClient(connection_string, **self._client_options())
            await client.admin.command("ping")
        except Exception as e:
            if client is not None:
                await client.close()
            raise self.classify_connection_error(e, connection_string) from e

        self.logger.debug("MongoDB client created", max_pool_size=self.pool_config.max_size)
        return client

    async def close_client(self, client: AsyncMongoClient) -> None:
        await client.close()

    async def execute(self, handle: PooledHandle, query: DocumentQuery) -> QueryResult:
        database = handle.client.get_default_database(default=DEFAULT_DATABASE)
        collection = database[query.collection]
        start = time.perf_counter()

        try:
            result = await self.run_with_timeout(self._dispatch(collection, query))
        except QueryBridgeException:
            raise
        except Exception as e:
            raise self.translate_error(e, handle.connection_string) from e

        elapsed_ms = (time.perf_counter() - start) * 1000

        if isinstance(result, list):
            rows, row_count = result, len(result)
        else:
            rows, row_count = [result], fold_write_count(result)

        return build_result(
            rows,
            row_count=row_count,
            elapsed_ms=elapsed_ms,
            max_rows=self.query_config.max_rows,
            backend=self.kind,
        )

    async def _dispatch(self, collection: Any, query: DocumentQuery) -> Any:
        """Run one operation; reads return a list, writes a metadata dict."""
        operation = query.operation
        query_filter = query.filter

        with pymongo.timeout(self.query_config.timeout):
            if operation is DocumentOperation.FIND:
                limit = min(query.limit or self.query_config.default_find_limit, self.query_config.max_rows)
                return await collection.find(query_filter).limit(limit).to_list(None)

            if operation is DocumentOperation.FIND_ONE:
                document = await collection.find_one(query_filter)
                return [document] if document is not None else []

            if operation is DocumentOperation.COUNT_DOCUMENTS:
                return [{"count": await collection.count_documents(query_filter)}]

            if operation is DocumentOperation.AGGREGATE:
                cursor = await collection.aggregate(query.pipeline)
                return await cursor.to_list(None)

            if operation is DocumentOperation.INSERT_ONE:
                result = await collection.insert_one(dict(query.document))
                return {"acknowledged": result.acknowledged, "insertedId": result.inserted_id}

            if operation is DocumentOperation.INSERT_MANY:
                result = await collection.insert_many([dict(doc) for doc in query.documents])
                return {
                    "acknowledged": result.acknowledged,
                    "insertedIds": list(result.inserted_ids),
                    "insertedCount": len(result.inserted_ids),
                }

            if operation in (DocumentOperation.UPDATE_ONE, DocumentOperation.UPDATE_MANY):
                method = (
                    collection.update_one
                    if operation is DocumentOperation.UPDATE_ONE
                    else collection.update_many
                )
                result = await method(query_filter, query.update)
                return {
                    "acknowledged": result.acknowledged,
                    "matchedCount": result.matched_count,
                    "modifiedCount": result.modified_count,
                    "upsertedId": result.upserted_id,
                }

            if operation is DocumentOperation.DELETE_ONE:
                result = await collection.delete_one(query_filter)
            else:
                result = await collection.delete_many(query_filter)
            return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}

    async def test_connection(self, connection_string: str) -> ConnectionTestResult:
        client: Optional[AsyncMongoClient] = None
        try:
            client = AsyncMongoClient(connection_string, **self._client_options())
            info = await client.server_info()
        except Exception as e:
            raise self.classify_connection_error(e, connection_string) from e
        finally:
            if client is not None:
                await client.close()

        return ConnectionTestResult(
            backend=self.kind,
            version=info.get("version"),
            message=f"Successfully connected to {self.display_name}",
        )

    async def introspect_schema(self, handle: PooledHandle) -> SchemaDescriptor:
        database = handle.client.get_default_database(default=DEFAULT_DATABASE)
        try:
            return await self.run_with_timeout(self._sample_collections(database))
        except QueryBridgeException:
            raise
        except Exception as e:
            raise self.translate_error(e, handle.connection_string) from e

    async def _sample_collections(self, database: Any) -> SchemaDescriptor:
        names: List[str] = await database.list_collection_names()
        tables: SchemaDescriptor = {}

        for name in names[: self.query_config.schema_max_collections]:
            try:
                sample = (
                    await database[name].find().limit(self.query_config.schema_sample_size).to_list(None)
                )
            except PyMongoError as e:
                self.logger.warning("Could not sample collection", collection=name, error=str(e))
                tables[name] = []
                continue
            tables[name] = infer_document_fields(sample)

        return tables

    def classify_driver_error(self, exc: BaseException) -> Optional[str]:
        if isinstance(exc, (ExecutionTimeout, NetworkTimeout)):
            return ErrorCodes.TIMEOUT
        if isinstance(exc, OperationFailure) and exc.code in MONGO_ERROR_CODES:
            return MONGO_ERROR_CODES[exc.code]
        if isinstance(exc, PyMongoError) and not isinstance(exc, ConnectionFailure) and exc.timeout:
            # Client-side operation timeout from pymongo.timeout()
            return ErrorCodes.TIMEOUT
        return None

    def is_connection_failure(self, exc: BaseException) -> bool:
        return isinstance(exc, ConnectionFailure) or super().is_connection_failure(exc)
