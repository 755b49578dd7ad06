"""HTTP routes of the query proxy."""

from typing import Any, Awaitable, Dict, TypeVar

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.exceptions import QueryBridgeException, QueryError
from ..core.utils import redact_text, utc_timestamp
from ..database.service import QueryService
from ..logging import get_logger
from .schemas import ConnectionRequest, QueryRequest

T = TypeVar("T")

CONNECTION_STRING_REQUIRED = "Connection string is required"
QUERY_REQUIRED = "Connection string and query are required"

router = APIRouter(prefix="/api", tags=["Query"])
logger = get_logger("querybridge.api")


def get_service(request: Request) -> QueryService:
    return request.app.state.service


def _bad_request(message: str, *, with_message: bool = False) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": message}
    if with_message:
        content["message"] = message
    return JSONResponse(status_code=400, content=content)


async def _guarded(operation: Awaitable[T]) -> T:
    """Await ``operation``, wrapping unexpected errors as ``QueryError``."""
    try:
        return await operation
    except QueryBridgeException:
        raise
    except Exception as e:
        logger.exception("Unhandled error", error_type=type(e).__name__)
        raise QueryError(redact_text(str(e)) or type(e).__name__, cause=e) from e


@router.get("/health", tags=["Health"])
async def health() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "ok", "timestamp": utc_timestamp()}


@router.get("/stats", tags=["Health"])
async def stats(request: Request) -> Dict[str, Any]:
    """Pooled handles and recent operation timings. Targets are redacted."""
    return {"timestamp": utc_timestamp(), **get_service(request).get_stats()}


@router.post("/test-connection", response_model=None)
async def test_connection(body: ConnectionRequest, request: Request) -> Any:
    """Open a one-off connection and report the server version."""
    if not body.connection_string:
        return _bad_request(CONNECTION_STRING_REQUIRED, with_message=True)

    service = get_service(request)
    result = await _guarded(service.test_connection(body.connection_string, body.db_type))
    return result.to_response()


@router.post("/query", response_model=None)
async def execute_query(body: QueryRequest, request: Request) -> Any:
    """Execute a query and return the unified result envelope."""
    if not body.connection_string or body.query is None or body.query == "":
        return _bad_request(QUERY_REQUIRED)

    service = get_service(request)
    result = await _guarded(service.execute(body.connection_string, body.query, body.db_type))
    return result.to_response()


@router.post("/schema", response_model=None)
async def get_schema(body: ConnectionRequest, request: Request) -> Any:
    """Describe tables or collections for AI prompt context."""
    if not body.connection_string:
        return _bad_request(CONNECTION_STRING_REQUIRED)

    service = get_service(request)
    result = await _guarded(service.get_schema(body.connection_string, body.db_type))
    return result.to_response()
