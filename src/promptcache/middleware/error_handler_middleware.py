"""Error handling middleware for PromptCache API.

This middleware catches all exceptions and returns consistent error responses.
"""

import logging
import traceback
import uuid

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from promptcache.controller.schemas.responses import ErrorDetail, error_response
from promptcache.exception.api_exceptions import PromptCacheException

logger = logging.getLogger(__name__)

STATUS_CODE_NAMES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


class ErrorHandlerMiddleware:
    """Pure ASGI middleware to catch and format all exceptions."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response_started = False

        async def send_with_request_id(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            if response_started:
                raise
            response = self.handle_exception(request, exc, request_id)
            await response(scope, receive, send)

    def handle_exception(
        self, request: Request, exc: Exception, request_id: str
    ) -> JSONResponse:
        """Handle exception and return formatted error response.

        Args:
            request: Request that caused the exception
            exc: Exception that was raised
            request_id: Request ID for tracing

        Returns:
            JSONResponse with formatted error
        """
        debug_mode = getattr(request.app.state, "debug", False)

        path = request.url.path
        method = request.method

        if isinstance(exc, PromptCacheException) and exc.status_code < 500:
            logger.warning(f"{method} {path} rejected: {exc.code} {exc.message}")
        else:
            logger.error(
                f"Error processing request: {method} {path}",
                extra={
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                },
                exc_info=True,
            )

        stack_trace = traceback.format_exc() if debug_mode else None

        if isinstance(exc, PromptCacheException):
            content = error_response(
                code=exc.code,
                message=exc.message,
                field=exc.field,
                details=exc.details or None,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        elif isinstance(exc, RequestValidationError):
            content = error_response(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                errors=[
                    ErrorDetail(
                        code="VALIDATION_ERROR",
                        message=error["msg"],
                        field=" -> ".join(str(loc) for loc in error["loc"]),
                        details={"type": error["type"]},
                    )
                    for error in exc.errors()
                ],
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_422_UNPROCESSABLE_CONTENT

        elif isinstance(exc, StarletteHTTPException):
            content = error_response(
                code=STATUS_CODE_NAMES.get(exc.status_code, "HTTP_ERROR"),
                message=str(exc.detail),
                details={"status_code": exc.status_code},
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        else:
            content = error_response(
                code="INTERNAL_ERROR",
                message=str(exc) if debug_mode else "An internal error occurred",
                details=(
                    {"exception_type": type(exc).__name__} if debug_mode else None
                ),
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        return JSONResponse(
            status_code=status_code,
            content=content,
            headers={"X-Request-ID": request_id},
        )
