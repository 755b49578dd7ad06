"""Unit tests for the QueryBridge exception hierarchy.

This module tests the exception classes and the connection error helper to
ensure errors carry the codes and messages API callers rely on.
"""

import pytest

from querybridge.core.exceptions import (
    CONNECTION_MESSAGES,
    PERMISSION_MESSAGE,
    TIMEOUT_MESSAGE,
    ConfigurationError,
    ConnectionError,
    ErrorCodes,
    NotFoundError,
    PermissionError,
    QueryBridgeException,
    QueryError,
    SyntaxError,
    TimeoutError,
    ValidationError,
    connection_error,
)


class TestQueryBridgeException:
    """Test base QueryBridge exception class."""

    def test_basic_exception_creation(self):
        """Test basic exception creation with message only."""
        exc = QueryBridgeException("Test error message")

        assert str(exc) == "QueryBridgeException: Test error message"
        assert exc.message == "Test error message"
        assert exc.code == "QueryBridgeException"
        assert exc.context == {}
        assert exc.cause is None

    def test_exception_with_custom_code(self):
        exc = QueryBridgeException("Test error", code="CUSTOM_ERROR")

        assert exc.code == "CUSTOM_ERROR"
        assert str(exc) == "CUSTOM_ERROR: Test error"

    def test_exception_with_context_and_cause(self):
        cause = ValueError("driver said no")
        exc = QueryBridgeException(
            "Wrapped",
            code="WRAPPED",
            context={"backend": "postgres"},
            cause=cause,
        )

        assert exc.context == {"backend": "postgres"}
        assert exc.cause is cause

    def test_original_error_prefers_cause(self):
        exc = QueryBridgeException("Friendly message", cause=RuntimeError("raw driver text"))
        assert exc.original_error == "raw driver text"

    def test_original_error_falls_back_to_message(self):
        exc = QueryBridgeException("Friendly message")
        assert exc.original_error == "Friendly message"

    def test_to_dict(self):
        exc = QueryBridgeException(
            "Test error",
            code="TEST",
            context={"key": "value"},
            cause=ValueError("root"),
        )

        assert exc.to_dict() == {
            "error_type": "QueryBridgeException",
            "message": "Test error",
            "code": "TEST",
            "context": {"key": "value"},
            "cause": "root",
        }

    def test_repr_contains_fields(self):
        exc = QueryBridgeException("Test error", code="TEST")
        representation = repr(exc)

        assert "QueryBridgeException(" in representation
        assert "message='Test error'" in representation
        assert "code='TEST'" in representation

    def test_exception_can_be_raised_and_caught(self):
        with pytest.raises(QueryBridgeException) as exc_info:
            raise QueryBridgeException("boom", code="BOOM")

        assert exc_info.value.code == "BOOM"


class TestExceptionSubclasses:
    """Test the default codes of each category."""

    @pytest.mark.parametrize(
        "exc_class, expected_code",
        [
            (ValidationError, ErrorCodes.VALIDATION_ERROR),
            (ConnectionError, ErrorCodes.CONNECTION_FAILED),
            (TimeoutError, ErrorCodes.TIMEOUT),
            (NotFoundError, ErrorCodes.NOT_FOUND),
            (SyntaxError, ErrorCodes.SYNTAX_ERROR),
            (PermissionError, ErrorCodes.PERMISSION_DENIED),
            (QueryError, ErrorCodes.QUERY_ERROR),
        ],
    )
    def test_default_codes(self, exc_class, expected_code):
        exc = exc_class("message")

        assert isinstance(exc, QueryBridgeException)
        assert exc.code == expected_code

    def test_explicit_code_overrides_default(self):
        exc = ValidationError("Unsupported", code=ErrorCodes.UNSUPPORTED_BACKEND)
        assert exc.code == ErrorCodes.UNSUPPORTED_BACKEND

    def test_configuration_error_uses_class_name(self):
        assert ConfigurationError("bad").code == "ConfigurationError"

    def test_builtin_names_are_not_shadowed_for_catching(self):
        """QueryBridge categories do not inherit from the builtins they share names with."""
        import builtins

        assert not issubclass(TimeoutError, builtins.TimeoutError)
        assert not issubclass(ConnectionError, builtins.ConnectionError)


class TestConnectionErrorHelper:
    """Test connection_error message selection."""

    @pytest.mark.parametrize("code", sorted(CONNECTION_MESSAGES))
    def test_standard_messages(self, code):
        exc = connection_error(code, detail="ignored")

        assert isinstance(exc, ConnectionError)
        assert exc.code == code
        assert exc.message == CONNECTION_MESSAGES[code]

    def test_generic_failure_includes_detail(self):
        exc = connection_error(ErrorCodes.CONNECTION_FAILED, detail="socket closed")

        assert exc.code == ErrorCodes.CONNECTION_FAILED
        assert exc.message == "Connection failed: socket closed"

    def test_generic_failure_without_detail(self):
        exc = connection_error(ErrorCodes.CONNECTION_FAILED)
        assert exc.message == "Connection failed"

    def test_context_and_cause_are_kept(self):
        cause = OSError("refused")
        exc = connection_error(
            ErrorCodes.CONNECTION_REFUSED,
            context={"backend": "mysql"},
            cause=cause,
        )

        assert exc.context == {"backend": "mysql"}
        assert exc.cause is cause
        assert exc.original_error == "refused"

    def test_messages_are_user_facing(self):
        assert "sslmode=require" in CONNECTION_MESSAGES[ErrorCodes.SSL_ERROR]
        assert "username and password" in CONNECTION_MESSAGES[ErrorCodes.AUTH_FAILED]
        assert TIMEOUT_MESSAGE.startswith("Query timed out")
        assert PERMISSION_MESSAGE.startswith("Permission denied")
