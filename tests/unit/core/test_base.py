"""Unit tests for QueryBridge base classes.

This module tests configuration handling, health reporting and the async
initialize/cleanup lifecycle shared by long-lived components.
"""

import asyncio

import pytest

from querybridge.core.base import AsyncComponent, BaseComponent
from querybridge.core.exceptions import ErrorCodes, QueryBridgeException, ValidationError


# Test configuration class - NOT a test class (no Test prefix)
class ComponentTestConfig:
    """Test configuration for component testing."""
    def __init__(self, name: str = "test", value: int = 42):
        self.name = name
        self.value = value


# Test component implementations - avoid pytest collection with underscore prefix
class _TestableBaseComponent(BaseComponent[ComponentTestConfig]):
    component_name = "TestComponent"
    version = "2.1.0"


class _TestableAsyncComponent(AsyncComponent[ComponentTestConfig]):
    component_name = "TestAsyncComponent"

    def __init__(self, config: ComponentTestConfig):
        super().__init__(config)
        self.initialize_calls = 0
        self.cleanup_calls = 0

    async def _async_initialize(self) -> None:
        self.initialize_calls += 1

    async def _async_cleanup(self) -> None:
        self.cleanup_calls += 1


class _FailingInitComponent(AsyncComponent[ComponentTestConfig]):
    component_name = "FailingInit"

    async def _async_initialize(self) -> None:
        raise RuntimeError("cannot start")


class _FailingCleanupComponent(AsyncComponent[ComponentTestConfig]):
    component_name = "FailingCleanup"

    async def _async_initialize(self) -> None:
        pass

    async def _async_cleanup(self) -> None:
        raise RuntimeError("cannot stop")


class TestBaseComponent:
    """Test cases for BaseComponent."""

    def test_initialization(self):
        config = ComponentTestConfig(name="orders")
        component = _TestableBaseComponent(config)

        assert component.config is config
        assert component.is_initialized is False
        assert component.uptime >= 0

    def test_none_config_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _TestableBaseComponent(None)

        assert exc_info.value.code == ErrorCodes.CONFIG_INVALID
        assert exc_info.value.context == {"component": "TestComponent"}

    def test_health_status(self):
        component = _TestableBaseComponent(ComponentTestConfig())
        status = component.get_health_status()

        assert status["component"] == "TestComponent"
        assert status["version"] == "2.1.0"
        assert status["initialized"] is False
        assert status["status"] == "not_initialized"
        assert status["uptime_seconds"] >= 0

    def test_repr(self):
        component = _TestableBaseComponent(ComponentTestConfig())
        assert "name='TestComponent'" in repr(component)
        assert "initialized=False" in repr(component)


class TestAsyncComponent:
    """Test cases for AsyncComponent lifecycle."""

    @pytest.mark.asyncio
    async def test_initialize_and_cleanup(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        await component.initialize()
        assert component.is_initialized
        assert component.get_health_status()["status"] == "healthy"

        await component.cleanup()
        assert not component.is_initialized
        assert component.cleanup_calls == 1

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        await asyncio.gather(component.initialize(), component.initialize())
        await component.initialize()

        assert component.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_cleanup_without_initialize_is_noop(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        await component.cleanup()

        assert component.cleanup_calls == 0

    @pytest.mark.asyncio
    async def test_initialize_failure_is_wrapped(self):
        component = _FailingInitComponent(ComponentTestConfig())

        with pytest.raises(QueryBridgeException) as exc_info:
            await component.initialize()

        assert exc_info.value.code == ErrorCodes.COMPONENT_INITIALIZATION_FAILED
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert not component.is_initialized

    @pytest.mark.asyncio
    async def test_cleanup_failure_is_wrapped_and_resets_state(self):
        component = _FailingCleanupComponent(ComponentTestConfig())
        await component.initialize()

        with pytest.raises(QueryBridgeException) as exc_info:
            await component.cleanup()

        assert exc_info.value.code == ErrorCodes.COMPONENT_CLEANUP_FAILED
        assert not component.is_initialized

    @pytest.mark.asyncio
    async def test_managed_lifecycle(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        async with component.managed_lifecycle() as managed:
            assert managed is component
            assert component.is_initialized

        assert not component.is_initialized
        assert component.cleanup_calls == 1

    @pytest.mark.asyncio
    async def test_managed_lifecycle_cleans_up_on_error(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        with pytest.raises(ValueError):
            async with component.managed_lifecycle():
                raise ValueError("inside block")

        assert component.cleanup_calls == 1

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        component = _TestableAsyncComponent(ComponentTestConfig())

        async with component as entered:
            assert entered.is_initialized

        assert not component.is_initialized
