"""Query service.

Drives one request through the pipeline: resolve the backend, normalize the
query, lease a pooled handle, execute through the adapter and log the
outcome.

Each query moves through ``received -> validated -> executing`` and ends in
``completed``, ``timed_out`` or ``failed``.
"""

from typing import Any, Dict, Optional

from ..config.models import QueryConfig
from ..core.exceptions import QueryBridgeException
from ..core.exceptions import TimeoutError as QueryTimeoutError
from ..logging import get_logger, get_performance_logger
from ..logging.events import log_query_execution, query_preview
from .models import BackendKind, ConnectionTestResult, QueryResult, SchemaResult
from .normalizer import normalize_query
from .registry import ConnectionRegistry


class QueryService:
    """Executes queries, connection tests and schema introspection.

    Attributes:
        registry: Registry owning the pooled handles
        config: Query execution limits
    """

    def __init__(self, registry: ConnectionRegistry, config: QueryConfig) -> None:
        self.registry = registry
        self.config = config
        self.logger = get_logger("querybridge.service")
        self.perf_logger = get_performance_logger("querybridge.service")

    async def execute(
        self,
        connection_string: str,
        query: Any,
        db_type: Optional[str] = None,
    ) -> QueryResult:
        """Execute one query.

        Args:
            connection_string: Target database
            query: SQL text or MongoDB JSON document
            db_type: Explicit backend name, detected from the string when absent

        Returns:
            Unified query result

        Raises:
            QueryBridgeException: Classified validation, connection or execution error
        """
        kind = BackendKind.resolve(db_type, connection_string)

        with self.logger.context(backend=kind.value):
            self.logger.debug("Query state changed", state="received")
            try:
                normalized = normalize_query(query, kind, max_length=self.config.max_query_length)
            except QueryBridgeException as e:
                self.logger.info(
                    "Query rejected",
                    state="failed",
                    error_code=e.code,
                    error=e.message,
                )
                raise
            self.logger.debug("Query state changed", state="validated")

            try:
                with self.perf_logger.measure("query_execution", backend=kind.value) as timer:
                    async with self.registry.lease(connection_string, kind) as handle:
                        self.logger.debug(
                            "Query state changed",
                            state="executing",
                            preview=query_preview(normalized.source),
                        )
                        result = await self.registry.adapter_for(kind).execute(handle, normalized)
            except QueryTimeoutError as e:
                log_query_execution(
                    normalized.source,
                    backend=kind.value,
                    state="timed_out",
                    duration_ms=timer.duration_ms or 0.0,
                    error_code=e.code,
                )
                raise
            except QueryBridgeException as e:
                log_query_execution(
                    normalized.source,
                    backend=kind.value,
                    state="failed",
                    duration_ms=timer.duration_ms or 0.0,
                    error_code=e.code,
                    error=e.message,
                )
                raise

            log_query_execution(
                normalized.source,
                backend=kind.value,
                state="completed",
                row_count=result.row_count,
                duration_ms=timer.duration_ms or 0.0,
            )
            return result

    async def test_connection(
        self,
        connection_string: str,
        db_type: Optional[str] = None,
    ) -> ConnectionTestResult:
        """Open a one-off connection and report the server version.

        The connection is not cached in the registry.
        """
        kind = BackendKind.resolve(db_type, connection_string)
        adapter = self.registry.adapter_for(kind)

        with self.perf_logger.measure("test_connection", backend=kind.value):
            result = await adapter.test_connection(connection_string)

        self.logger.info("Connection test succeeded", backend=kind.value, version=result.version)
        return result

    async def get_schema(
        self,
        connection_string: str,
        db_type: Optional[str] = None,
    ) -> SchemaResult:
        """Describe the tables or collections of a database."""
        kind = BackendKind.resolve(db_type, connection_string)

        with self.perf_logger.measure("schema_introspection", backend=kind.value):
            async with self.registry.lease(connection_string, kind) as handle:
                tables = await self.registry.adapter_for(kind).introspect_schema(handle)

        self.logger.info("Schema introspected", backend=kind.value, tables=len(tables))
        return SchemaResult(backend=kind, tables=tables)

    def get_stats(self) -> Dict[str, Any]:
        """Registry state plus rolling timings of each operation."""
        return {
            "registry": self.registry.get_health_status(),
            "connections": self.registry.list_handles(),
            "operations": self.perf_logger.snapshot(),
        }
