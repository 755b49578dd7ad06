"""
QueryBridge HTTP application.

FastAPI application exposing the query proxy. The connection registry is
created here (or injected by the caller), stored on ``app.state`` and torn
down by the application lifespan.

Run:
    python -m querybridge --port 3001
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.models import AppConfig
from ..core.exceptions import QueryBridgeException, ValidationError
from ..database.registry import ConnectionRegistry, default_adapters
from ..database.service import QueryService
from ..database.unifier import error_envelope
from ..logging import get_logger
from .routes import router

REQUEST_ID_HEADER = "X-Request-ID"
TEST_CONNECTION_PATH = "/api/test-connection"

logger = get_logger("querybridge.api")


def create_app(
    config: Optional[AppConfig] = None,
    *,
    registry: Optional[ConnectionRegistry] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration (defaults to ``AppConfig()``)
        registry: Pre-built registry, mainly for tests

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig()
    if registry is None:
        registry = ConnectionRegistry(config.pool, default_adapters(config))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "Starting application",
            app=config.app_name,
            version=config.version,
            environment=config.environment,
            query_timeout=config.query.timeout,
            max_rows=config.query.max_rows,
        )
        await registry.initialize()
        try:
            yield
        finally:
            logger.info("Shutting down application")
            await registry.cleanup()

    app = FastAPI(
        title=config.app_name,
        description="Multi-backend query proxy",
        version=config.version,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.registry = registry
    app.state.service = QueryService(registry, config.query)

    # =========================================================================
    # Middleware
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        start = time.perf_counter()

        with logger.context(request_id=request_id):
            response = await call_next(request)
            logger.info(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # =========================================================================
    # Exception handlers
    # =========================================================================

    @app.exception_handler(QueryBridgeException)
    async def querybridge_exception_handler(request: Request, exc: QueryBridgeException):
        status_code = 400 if isinstance(exc, ValidationError) else 500
        logger.warning(
            "Request failed",
            path=request.url.path,
            error_code=exc.code,
            error=exc.message,
            status=status_code,
        )

        body = error_envelope(exc, include_original=config.is_development)
        if request.url.path == TEST_CONNECTION_PATH:
            body["message"] = exc.message
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = "Request body must be a JSON object"
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": message, "message": message},
        )

    app.include_router(router)
    return app
