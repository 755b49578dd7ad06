"""PostgreSQL adapter built on asyncpg."""

import time
from typing import Any, List, Optional, Tuple

import asyncpg

from ...core.exceptions import ErrorCodes, QueryBridgeException
from ...core.utils import redact_text
from ..handles import PooledHandle
from ..introspection import classify_postgres_column, group_columns_by_table
from ..models import BackendKind, ConnectionTestResult, QueryResult, SchemaDescriptor, SqlQuery
from ..unifier import build_result
from .base import BaseBackendAdapter, status_row_count

POSTGRES_SCHEMA_QUERY = """
SELECT
    c.table_name,
    c.column_name,
    c.data_type,
    c.is_nullable,
    c.column_default,
    c.is_identity,
    c.is_generated,
    (pk.column_name IS NOT NULL) AS is_primary_key
FROM information_schema.columns c
LEFT JOIN (
    SELECT ku.table_name, ku.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage ku
        ON tc.constraint_name = ku.constraint_name
        AND tc.table_schema = ku.table_schema
    WHERE tc.constraint_type = 'PRIMARY KEY'
        AND tc.table_schema = $1
) pk ON c.table_name = pk.table_name AND c.column_name = pk.column_name
WHERE c.table_schema = $1
ORDER BY c.table_name, c.ordinal_position
LIMIT $2
"""

# SQLSTATE -> error code
SQLSTATE_CODES = {
    "42P01": ErrorCodes.NOT_FOUND,  # undefined_table
    "42703": ErrorCodes.NOT_FOUND,  # undefined_column
    "3F000": ErrorCodes.NOT_FOUND,  # invalid_schema_name
    "42601": ErrorCodes.SYNTAX_ERROR,
    "42501": ErrorCodes.PERMISSION_DENIED,
    "57014": ErrorCodes.TIMEOUT,  # query_canceled, raised by statement_timeout
    "28P01": ErrorCodes.AUTH_FAILED,
    "28000": ErrorCodes.AUTH_FAILED,
}

SERVER_ERROR_SEVERITIES = frozenset({"WARNING", "ERROR", "FATAL", "PANIC"})


class PostgreSQLAdapter(BaseBackendAdapter):
    """Runs queries against PostgreSQL through an asyncpg pool.

    The pool carries ``command_timeout`` so a statement abandoned by the
    timeout race is also bounded on the server connection.
    """

    kind = BackendKind.POSTGRES
    display_name = "PostgreSQL"

    async def create_client(self, connection_string: str) -> asyncpg.Pool:
        try:
            pool = await asyncpg.create_pool(
                dsn=connection_string,
                min_size=1,
                max_size=self.pool_config.max_size,
                max_inactive_connection_lifetime=self.pool_config.idle_timeout,
                timeout=self.pool_config.connect_timeout,
                command_timeout=self.query_config.timeout,
                init=self._watch_connection,
            )
        except Exception as e:
            raise self.classify_connection_error(e, connection_string) from e

        self.logger.debug("PostgreSQL pool created", max_size=self.pool_config.max_size)
        return pool

    async def close_client(self, client: asyncpg.Pool) -> None:
        await client.close()

    async def _watch_connection(self, conn: asyncpg.Connection) -> None:
        """Attach error listeners to every connection the pool opens."""
        conn.add_termination_listener(self._on_connection_terminated)
        conn.add_log_listener(self._on_server_message)

    def _on_connection_terminated(self, conn: asyncpg.Connection) -> None:
        # Also fires on orderly pool shutdown.
        self.logger.info("PostgreSQL pool connection terminated", backend=self.kind.value)

    def _on_server_message(self, conn: asyncpg.Connection, message: Any) -> None:
        severity = getattr(message, "severity", None) or "NOTICE"
        text = redact_text(str(getattr(message, "message", message)))
        if severity in SERVER_ERROR_SEVERITIES:
            self.logger.warning("PostgreSQL server reported an error", severity=severity, error=text)
        else:
            self.logger.debug("PostgreSQL server message", severity=severity, detail=text)

    async def execute(self, handle: PooledHandle, query: SqlQuery) -> QueryResult:
        pool = handle.client
        start = time.perf_counter()

        try:
            records, columns, status = await self.run_with_timeout(self._fetch(pool, query.text))
        except QueryBridgeException:
            raise
        except Exception as e:
            raise self.translate_error(e, handle.connection_string) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        rows = [dict(record) for record in records]
        row_count = len(rows) if columns else status_row_count(status)

        return build_result(
            rows,
            columns=columns,
            row_count=row_count,
            elapsed_ms=elapsed_ms,
            max_rows=self.query_config.max_rows,
            backend=self.kind,
        )

    async def _fetch(self, pool: asyncpg.Pool, sql: str) -> Tuple[List[Any], List[str], Optional[str]]:
        async with pool.acquire() as conn:
            statement = await conn.prepare(sql)
            records = await statement.fetch()
            columns = [attribute.name for attribute in statement.get_attributes()]
            return records, columns, statement.get_statusmsg()

    async def test_connection(self, connection_string: str) -> ConnectionTestResult:
        conn = None
        try:
            conn = await asyncpg.connect(connection_string, timeout=self.pool_config.connect_timeout)
            version = await conn.fetchval("SELECT version()")
        except Exception as e:
            raise self.classify_connection_error(e, connection_string) from e
        finally:
            if conn is not None:
                await conn.close()

        return ConnectionTestResult(
            backend=self.kind,
            version=version,
            message=f"Successfully connected to {self.display_name}",
        )

    async def introspect_schema(self, handle: PooledHandle) -> SchemaDescriptor:
        pool = handle.client
        try:
            rows = await self.run_with_timeout(
                pool.fetch(
                    POSTGRES_SCHEMA_QUERY,
                    self.query_config.postgres_schema,
                    self.query_config.schema_column_limit,
                )
            )
        except QueryBridgeException:
            raise
        except Exception as e:
            raise self.translate_error(e, handle.connection_string) from e

        return group_columns_by_table((dict(row) for row in rows), classify_postgres_column)

    def classify_driver_error(self, exc: BaseException) -> Optional[str]:
        if isinstance(exc, (asyncpg.InvalidPasswordError, asyncpg.InvalidAuthorizationSpecificationError)):
            return ErrorCodes.AUTH_FAILED
        sqlstate = getattr(exc, "sqlstate", None)
        if isinstance(exc, asyncpg.PostgresError) and sqlstate:
            return SQLSTATE_CODES.get(sqlstate)
        return None
