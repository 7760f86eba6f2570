"""
Error Handler Middleware

Consistent error envelopes for every endpoint:

    {"success": false, "error": "<message>"}

Domain errors map to their status code with their message. Anything
unexpected becomes a generic 500; details go to the logs and Sentry
only, never to the caller.
"""

import traceback
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from crisisline.domain.exceptions import CrisislineError
from crisisline.infrastructure.monitoring import capture_exception_with_context
from crisisline.config.logging_config import get_logger, bind_correlation_id, clear_context

logger = get_logger(__name__)

GENERIC_ERROR = "Internal server error"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Provides:
    - Correlation ID tracking for all requests
    - Generic 500 envelope for unhandled exceptions
    - Error logging with context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
        bind_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            return response

        except Exception as e:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error_type=type(e).__name__,
                traceback=traceback.format_exc(),
            )
            capture_exception_with_context(e, correlation_id=correlation_id)

            response = error_response(500, GENERIC_ERROR)
            response.headers["X-Correlation-ID"] = correlation_id
            return response

        finally:
            clear_context()


async def _domain_error_handler(request: Request, exc: CrisislineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Domain error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error_message=exc.message,
        )
        return error_response(exc.status_code, GENERIC_ERROR)

    logger.info(
        "Request rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
    )
    return error_response(exc.status_code, exc.message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({
        str(err["loc"][-1]) for err in exc.errors() if err.get("loc")
    })
    message = "Invalid request"
    if fields:
        message += f": {', '.join(fields)}"
    return error_response(400, message)


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain and request validation errors to the error envelope."""
    app.add_exception_handler(CrisislineError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
