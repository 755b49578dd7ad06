"""Unit tests for result unification."""

import datetime
import decimal
import json
import uuid

from bson import Decimal128, ObjectId

from querybridge.core.exceptions import ErrorCodes, NotFoundError, QueryError
from querybridge.database.models import BackendKind
from querybridge.database.unifier import build_result, error_envelope, to_jsonable


class TestToJsonable:
    """Driver values become JSON-safe."""

    def test_scalars_pass_through(self):
        for value in (None, True, 3, 2.5, "text"):
            assert to_jsonable(value) == value

    def test_identifiers_and_decimals(self):
        oid = ObjectId("65f1c0ffee0000000000beef")
        ident = uuid.UUID("12345678-1234-5678-1234-567812345678")

        assert to_jsonable(oid) == "65f1c0ffee0000000000beef"
        assert to_jsonable(ident) == "12345678-1234-5678-1234-567812345678"
        assert to_jsonable(decimal.Decimal("19.90")) == "19.90"
        assert to_jsonable(Decimal128("1.5")) == "1.5"

    def test_temporal_values(self):
        moment = datetime.datetime(2024, 3, 1, 12, 30, tzinfo=datetime.timezone.utc)

        assert to_jsonable(moment) == "2024-03-01T12:30:00+00:00"
        assert to_jsonable(datetime.date(2024, 3, 1)) == "2024-03-01"
        assert to_jsonable(datetime.time(8, 15)) == "08:15:00"
        assert to_jsonable(datetime.timedelta(hours=1)) == "1:00:00"

    def test_binary_as_hex(self):
        assert to_jsonable(b"\x00\xff") == "00ff"
        assert to_jsonable(bytearray(b"\x10")) == "10"

    def test_containers_are_recursive(self):
        value = {"_id": ObjectId("65f1c0ffee0000000000beef"), "tags": ("a", decimal.Decimal("1"))}

        assert to_jsonable(value) == {"_id": "65f1c0ffee0000000000beef", "tags": ["a", "1"]}

    def test_unknown_types_become_strings(self):
        class Point:
            def __str__(self):
                return "(1, 2)"

        assert to_jsonable(Point()) == "(1, 2)"

    def test_result_is_json_serializable(self):
        row = {"when": datetime.datetime(2024, 1, 1), "amount": decimal.Decimal("2.50"), "blob": b"ab"}
        json.dumps(to_jsonable(row))


class TestBuildResult:
    """Row capping, columns and counts."""

    def test_basic(self):
        result = build_result(
            [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}],
            elapsed_ms=3.6,
            max_rows=10,
            backend=BackendKind.POSTGRES,
        )

        assert result.columns == ["id", "name"]
        assert result.row_count == 2
        assert result.total_rows == 2
        assert result.has_more is False
        assert result.execution_time_ms == 4
        assert result.backend is BackendKind.POSTGRES

    def test_rows_are_capped(self):
        rows = [{"n": i} for i in range(25)]

        result = build_result(rows, elapsed_ms=1, max_rows=10, backend=BackendKind.MYSQL)

        assert len(result.rows) == 10
        assert result.rows[-1] == {"n": 9}
        assert result.has_more is True
        assert result.total_rows == 25
        assert result.row_count == 25

    def test_exactly_at_cap_is_not_truncated(self):
        rows = [{"n": i} for i in range(10)]

        result = build_result(rows, elapsed_ms=1, max_rows=10, backend=BackendKind.MYSQL)

        assert result.has_more is False

    def test_explicit_columns_and_row_count(self):
        result = build_result(
            [],
            columns=["id", "name"],
            row_count=7,
            elapsed_ms=0,
            max_rows=10,
            backend=BackendKind.POSTGRES,
        )

        assert result.rows == []
        assert result.columns == ["id", "name"]
        assert result.row_count == 7
        assert result.total_rows == 0

    def test_empty_without_columns(self):
        result = build_result([], elapsed_ms=0, max_rows=10, backend=BackendKind.MONGODB)

        assert result.columns == []
        assert result.row_count == 0

    def test_values_are_converted(self):
        result = build_result(
            [{"_id": ObjectId("65f1c0ffee0000000000beef")}],
            elapsed_ms=0,
            max_rows=10,
            backend=BackendKind.MONGODB,
        )

        assert result.rows == [{"_id": "65f1c0ffee0000000000beef"}]


class TestErrorEnvelope:
    def test_without_original(self):
        exc = NotFoundError("Table or collection not found: relation \"x\" does not exist")

        assert error_envelope(exc) == {
            "success": False,
            "error": exc.message,
            "errorCode": ErrorCodes.NOT_FOUND,
        }

    def test_original_error_is_redacted(self):
        exc = QueryError(
            "Query failed",
            cause=RuntimeError("could not use postgresql://app:pw@db/shop"),
        )

        body = error_envelope(exc, include_original=True)

        assert body["originalError"] == "could not use postgresql://app:***@db/shop"
