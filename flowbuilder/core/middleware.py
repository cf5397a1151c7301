"""Middleware for error handling and request logging."""

import time
import uuid
from datetime import datetime
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    WorkflowEngineError,
    WorkflowNotFoundError,
    WorkflowValidationError,
    create_error_response,
)
from .logging import get_logger, logging_context


logger = get_logger(__name__)


def status_code_for_error(error: WorkflowEngineError) -> int:
    """HTTP status for a flow builder error: 400 invalid input, 404 missing record, 500 otherwise."""
    if isinstance(error, WorkflowValidationError):
        return 400
    if isinstance(error, WorkflowNotFoundError):
        return 404
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and turns escaped errors into JSON responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.perf_counter()

        with logging_context(request_id=request_id, method=request.method, path=request.url.path):
            try:
                response = await call_next(request)

            except WorkflowEngineError as e:
                logger.warning(
                    f"{request.method} {request.url.path} failed with {e.error_code}: {e.message}",
                    extra={"extra_fields": {"error_details": e.to_dict()}}
                )
                response = JSONResponse(status_code=status_code_for_error(e), content=create_error_response(e))

            except Exception as e:
                logger.error(f"Unexpected error on {request.method} {request.url.path}: {str(e)}", exc_info=True)
                response = JSONResponse(
                    status_code=500,
                    content={
                        "error": "InternalServerError",
                        "message": "An unexpected error occurred",
                        "details": {
                            "error_type": type(e).__name__,
                            "timestamp": datetime.utcnow().isoformat()
                        },
                        "request_id": request_id
                    }
                )

            duration = time.perf_counter() - start_time
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {duration:.3f}s")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response
