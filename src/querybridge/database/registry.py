"""Connection registry.

The registry owns every pooled driver client. Handles are created lazily on
first use, cached per (backend, connection string) and torn down on
invalidation, idle eviction or shutdown.

Example:
    >>> registry = ConnectionRegistry(config.pool, default_adapters(config))
    >>> async with registry.managed_lifecycle():
    ...     async with registry.lease(connection_string, BackendKind.POSTGRES) as handle:
    ...         result = await registry.adapter_for(handle.kind).execute(handle, query)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional

from ..config.models import AppConfig, PoolConfig
from ..core.base import AsyncComponent
from ..core.exceptions import ErrorCodes, ValidationError
from ..logging.events import log_connection_event
from .connectors.base import BaseBackendAdapter
from .connectors.mongodb import MongoDBAdapter
from .connectors.mysql import MySQLAdapter
from .connectors.postgresql import PostgreSQLAdapter
from .handles import HandleKey, PooledHandle
from .models import BackendKind


def default_adapters(config: AppConfig) -> List[BaseBackendAdapter]:
    """One adapter per supported backend, configured from ``config``."""
    return [
        PostgreSQLAdapter(config.pool, config.query),
        MySQLAdapter(config.pool, config.query),
        MongoDBAdapter(config.pool, config.query),
    ]


class ConnectionRegistry(AsyncComponent[PoolConfig]):
    """Owns pooled handles, one per (backend, connection string).

    The registry works without ``initialize``; initializing it only starts
    the idle eviction task.
    """

    component_name = "registry"

    def __init__(self, config: PoolConfig, adapters: Iterable[BaseBackendAdapter]) -> None:
        super().__init__(config)
        self._adapters: Dict[BackendKind, BaseBackendAdapter] = {}
        for adapter in adapters:
            self._adapters[adapter.kind] = adapter

        self._handles: Dict[HandleKey, PooledHandle] = {}
        self._key_locks: Dict[HandleKey, asyncio.Lock] = {}
        self._eviction_task: Optional[asyncio.Task] = None

    # Lifecycle

    async def _async_initialize(self) -> None:
        if self.config.idle_eviction_seconds > 0:
            self._eviction_task = asyncio.create_task(self._eviction_loop())

    async def _async_cleanup(self) -> None:
        if self._eviction_task is not None:
            self._eviction_task.cancel()
            try:
                await self._eviction_task
            except asyncio.CancelledError:
                pass
            self._eviction_task = None
        await self.close_all()

    async def _eviction_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.eviction_interval_seconds)
            try:
                await self.evict_idle()
            except Exception as e:
                self._logger.error("Idle eviction sweep failed", error=str(e))

    # Handles

    def adapter_for(self, kind: BackendKind) -> BaseBackendAdapter:
        """Return the adapter registered for ``kind``.

        Raises:
            ValidationError: If no adapter serves ``kind``
        """
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise ValidationError(
                f"Unsupported database type: {kind}",
                code=ErrorCodes.UNSUPPORTED_BACKEND,
                context={"supported": [k.value for k in self._adapters]},
            )
        return adapter

    async def get_handle(self, connection_string: str, kind: BackendKind) -> PooledHandle:
        """Return the cached handle for the key, creating it on first use.

        Concurrent first calls for the same key create exactly one client.
        A failed creation is not cached.

        Raises:
            ConnectionError: If the client cannot be created
        """
        key: HandleKey = (kind, connection_string)
        handle = self._handles.get(key)
        if handle is not None:
            return handle

        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            handle = self._handles.get(key)
            if handle is not None:
                return handle

            adapter = self.adapter_for(kind)
            try:
                client = await adapter.create_client(connection_string)
            except Exception as e:
                log_connection_event(
                    connection_string, "create", backend=kind.value, success=False, error=str(e)
                )
                raise

            handle = PooledHandle(key=key, client=client)
            self._handles[key] = handle
            log_connection_event(connection_string, "create", backend=kind.value)
            return handle

    @asynccontextmanager
    async def lease(self, connection_string: str, kind: BackendKind) -> AsyncGenerator[PooledHandle, None]:
        """Hold a handle for the duration of one operation.

        Idle eviction skips leased handles. If the block raises and the
        adapter evicts on failure, the handle is invalidated before the
        error propagates.
        """
        handle = await self.get_handle(connection_string, kind)
        handle.touch()
        handle.in_flight += 1
        try:
            yield handle
        except Exception:
            if self.adapter_for(kind).evicts_on_failure:
                await self._discard(handle, reason="operation_failed")
            raise
        finally:
            handle.in_flight -= 1

    async def invalidate(self, connection_string: str, kind: BackendKind) -> bool:
        """Evict and close one handle. Returns False if it was not cached."""
        handle = self._handles.get((kind, connection_string))
        if handle is None:
            return False
        await self._discard(handle, reason="invalidated")
        return True

    async def evict_idle(self) -> int:
        """Close handles that are not leased and have been idle too long.

        Returns:
            Number of handles evicted
        """
        threshold = self.config.idle_eviction_seconds
        if threshold <= 0:
            return 0

        evicted = 0
        for handle in list(self._handles.values()):
            # Closing an earlier handle yields, so a lease may have started since.
            if handle.in_flight > 0 or handle.idle_seconds() <= threshold:
                continue
            if await self._discard(handle, reason="idle"):
                evicted += 1
        return evicted

    async def close_all(self) -> None:
        """Close every cached handle, logging and tolerating close failures."""
        handles = list(self._handles.values())
        for handle in handles:
            await self._discard(handle, reason="shutdown")
        self._key_locks.clear()
        self._logger.info("All pooled handles closed", count=len(handles))

    async def _discard(self, handle: PooledHandle, *, reason: str) -> bool:
        """Uncache and close ``handle``. Returns False if it was already gone."""
        if self._handles.get(handle.key) is not handle:
            return False
        del self._handles[handle.key]
        lock = self._key_locks.get(handle.key)
        if lock is not None and not lock.locked():
            del self._key_locks[handle.key]

        try:
            await self.adapter_for(handle.kind).close_client(handle.client)
        except Exception as e:
            log_connection_event(
                handle.connection_string,
                "close",
                backend=handle.kind.value,
                success=False,
                error=str(e),
                reason=reason,
            )
            return True

        log_connection_event(
            handle.connection_string,
            "close",
            backend=handle.kind.value,
            reason=reason,
            use_count=handle.use_count,
        )
        return True

    # Diagnostics

    def __contains__(self, key: Any) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def list_handles(self) -> List[Dict[str, Any]]:
        """Redacted description of every cached handle."""
        return [handle.describe() for handle in self._handles.values()]

    def get_stats(self) -> Dict[str, Any]:
        by_backend: Dict[str, int] = {}
        for handle in self._handles.values():
            by_backend[handle.kind.value] = by_backend.get(handle.kind.value, 0) + 1
        return {
            "handles": len(self._handles),
            "by_backend": by_backend,
            "in_flight": sum(handle.in_flight for handle in self._handles.values()),
            "eviction_running": self._eviction_task is not None and not self._eviction_task.done(),
        }

    def get_health_status(self) -> Dict[str, Any]:
        status = super().get_health_status()
        status.update(self.get_stats())
        return status
