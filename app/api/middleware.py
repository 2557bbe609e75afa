"""API middleware for the search API.

Provides:
- Request ID correlation and access logging
- Error handling for failures that escape the routers

The search endpoints are public; authentication lives in the storefront
gateway in front of this service.
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.domain.exceptions import CatalogUnavailableError

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


def error_body(error_code: str, message: str, request_id: str | None) -> dict:
    """Build the storefront error envelope."""
    return {
        "success": False,
        "error_code": error_code,
        "message": message,
        "details": [],
        "request_id": request_id,
    }


# ============================================================================
# Request Context Middleware
# ============================================================================


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlate logs and responses with a request ID.

    The ID comes from the ``X-Request-ID`` header when the gateway sets
    one, otherwise a UUID is generated. It is stored on ``request.state``,
    bound into the structlog context for every line logged while the
    request runs, and echoed in the response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with correlation ID and timing."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                logger.info(
                    "Request completed",
                    method=request.method,
                    path=request.url.path,
                    query=request.url.query or None,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# ============================================================================
# Error Handling Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn escaped exceptions into error envelopes.

    A catalog outage maps to 503; anything else is logged with its
    traceback and maps to 500.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle errors uniformly."""
        try:
            return await call_next(request)
        except CatalogUnavailableError as e:
            logger.warning("Catalog unavailable", path=request.url.path, **e.details)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=error_body(
                    "CATALOG_UNAVAILABLE",
                    "Catalog is temporarily unavailable",
                    getattr(request.state, "request_id", None),
                ),
            )
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    "INTERNAL_ERROR",
                    "An internal error occurred",
                    getattr(request.state, "request_id", None),
                ),
            )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed),
    so request context wraps error handling and error responses still
    carry the request ID header.

    Args:
        app: FastAPI application instance.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
