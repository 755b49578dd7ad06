"""Base classes for QueryBridge components.

Long-lived, stateful parts of QueryBridge (the connection registry, for
example) derive from these classes so they share configuration handling,
health reporting and an async initialize/cleanup lifecycle.

Classes:
    BaseComponent: Generic base class for configured components
    AsyncComponent: Base class for components with async setup and teardown

Example:
    >>> class ConnectionRegistry(AsyncComponent[PoolConfig]):
    ...     async def _async_initialize(self) -> None:
    ...         self._reaper = asyncio.create_task(self._eviction_loop())
"""

import asyncio
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, ClassVar, Dict, Generic, TypeVar

from ..logging import get_logger
from .exceptions import ErrorCodes, QueryBridgeException, ValidationError

# Configuration type
T = TypeVar("T")


class BaseComponent(Generic[T], ABC):
    """Base class for configured QueryBridge components.

    Type Parameters:
        T: Type of configuration object this component accepts

    Attributes:
        component_name: Name of the component for logging and identification
        version: Component version reported in health output
    """

    component_name: ClassVar[str] = "BaseComponent"
    version: ClassVar[str] = "1.0.0"

    def __init__(self, config: T) -> None:
        """Initialize base component.

        Args:
            config: Configuration object for this component

        Raises:
            ValidationError: If configuration is missing
        """
        if config is None:
            raise ValidationError(
                "Configuration cannot be None",
                code=ErrorCodes.CONFIG_INVALID,
                context={"component": self.component_name},
            )

        self._config: T = config
        self._initialized: bool = False
        self._creation_time: float = time.time()
        self._logger = get_logger(f"querybridge.{self.component_name}")

    @property
    def config(self) -> T:
        """Component configuration."""
        return self._config

    @property
    def is_initialized(self) -> bool:
        """True once ``initialize`` has completed."""
        return self._initialized

    @property
    def uptime(self) -> float:
        """Seconds since the component was created."""
        return time.time() - self._creation_time

    def get_health_status(self) -> Dict[str, Any]:
        """Get component health status.

        Returns:
            Dictionary containing component health information
        """
        return {
            "component": self.component_name,
            "version": self.version,
            "initialized": self._initialized,
            "uptime_seconds": self.uptime,
            "status": "healthy" if self._initialized else "not_initialized",
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self.component_name!r}, "
            f"initialized={self._initialized}, "
            f"uptime={self.uptime:.2f}s)"
        )


class AsyncComponent(BaseComponent[T]):
    """Base class for components with async initialization and cleanup.

    ``initialize`` and ``cleanup`` are idempotent and serialized by locks, so
    an application lifespan and a test fixture can both call them safely.
    """

    def __init__(self, config: T) -> None:
        super().__init__(config)
        self._initialization_lock = asyncio.Lock()
        self._cleanup_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize component asynchronously.

        Raises:
            QueryBridgeException: If initialization fails
        """
        async with self._initialization_lock:
            if self._initialized:
                return

            self._logger.info("Initializing component", component=self.component_name)

            try:
                await self._async_initialize()
            except Exception as e:
                self._logger.error(
                    "Component initialization failed",
                    component=self.component_name,
                    error=str(e),
                )
                raise QueryBridgeException(
                    f"Failed to initialize {self.component_name}",
                    code=ErrorCodes.COMPONENT_INITIALIZATION_FAILED,
                    context={"component": self.component_name},
                    cause=e,
                ) from e

            self._initialized = True
            self._logger.info("Component initialized", component=self.component_name)

    async def cleanup(self) -> None:
        """Release component resources asynchronously.

        Raises:
            QueryBridgeException: If cleanup fails
        """
        async with self._cleanup_lock:
            if not self._initialized:
                return

            self._logger.info("Cleaning up component", component=self.component_name)

            try:
                await self._async_cleanup()
            except Exception as e:
                self._logger.error(
                    "Component cleanup failed",
                    component=self.component_name,
                    error=str(e),
                )
                raise QueryBridgeException(
                    f"Failed to clean up {self.component_name}",
                    code=ErrorCodes.COMPONENT_CLEANUP_FAILED,
                    context={"component": self.component_name},
                    cause=e,
                ) from e
            finally:
                self._initialized = False

            self._logger.info("Component cleaned up", component=self.component_name)

    @abstractmethod
    async def _async_initialize(self) -> None:
        """Perform component-specific initialization work."""

    async def _async_cleanup(self) -> None:
        """Perform component-specific cleanup work."""

    @asynccontextmanager
    async def managed_lifecycle(self) -> AsyncGenerator["AsyncComponent[T]", None]:
        """Initialize the component and guarantee cleanup on exit.

        Example:
            >>> async with registry.managed_lifecycle():
            ...     await service.execute(connection_string, "SELECT 1")
        """
        try:
            await self.initialize()
            yield self
        finally:
            await self.cleanup()

    async def __aenter__(self) -> "AsyncComponent[T]":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.cleanup()
