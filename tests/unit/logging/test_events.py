"""Tests for connection and query lifecycle events."""

from unittest.mock import patch

import pytest

from querybridge.core.utils import compute_hash
from querybridge.logging import events
from querybridge.logging.events import log_connection_event, log_query_execution, query_preview


@pytest.fixture
def events_logger():
    with patch.object(events, "_logger") as logger:
        yield logger


class TestQueryPreview:
    def test_collapses_whitespace(self):
        assert query_preview("SELECT *\n  FROM   users\n") == "SELECT * FROM users"

    def test_truncates(self):
        preview = query_preview("SELECT " + "x, " * 200 + "y FROM t")

        assert len(preview) == events.QUERY_PREVIEW_LENGTH
        assert preview.endswith("...")


class TestLogConnectionEvent:
    def test_success_is_info_and_redacted(self, events_logger):
        log_connection_event("postgresql://app:pw@db/shop", "create", backend="postgres", max_size=10)

        message, = events_logger.info.call_args.args
        fields = events_logger.info.call_args.kwargs
        assert message == "Connection event"
        assert fields["event_type"] == "connection"
        assert fields["operation"] == "create"
        assert fields["target"] == "postgresql://app:***@db/shop"
        assert fields["max_size"] == 10
        assert "error" not in fields

    def test_failure_is_error(self, events_logger):
        log_connection_event(
            "mysql://root:pw@db/x", "close", backend="mysql", success=False, error="already closed"
        )

        events_logger.info.assert_not_called()
        fields = events_logger.error.call_args.kwargs
        assert fields["success"] is False
        assert fields["error"] == "already closed"


class TestLogQueryExecution:
    def test_completed(self, events_logger):
        log_query_execution("SELECT 1", backend="postgres", state="completed", row_count=1, duration_ms=1.23456)

        fields = events_logger.info.call_args.kwargs
        assert fields["event_type"] == "query_execution"
        assert fields["state"] == "completed"
        assert fields["query_hash"] == compute_hash("SELECT 1")
        assert fields["query_preview"] == "SELECT 1"
        assert fields["duration_ms"] == 1.235
        assert "error_code" not in fields

    @pytest.mark.parametrize("state", ["timed_out", "failed"])
    def test_non_completed_states_warn(self, events_logger, state):
        log_query_execution(
            "SELECT pg_sleep(60)", backend="postgres", state=state, error_code="TIMEOUT", error="slow"
        )

        events_logger.info.assert_not_called()
        fields = events_logger.warning.call_args.kwargs
        assert fields["state"] == state
        assert fields["error_code"] == "TIMEOUT"
        assert fields["error"] == "slow"
