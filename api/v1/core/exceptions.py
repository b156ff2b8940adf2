import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from api.config.logging import add_request_context, get_logger

logger = get_logger(__name__)


class CompensationJobsException(Exception):
    """Base exception for application errors that map to an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(CompensationJobsException):
    """Request data that parsed but does not make sense (bad job payload)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


class NotFoundError(CompensationJobsException):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


class UnauthorizedError(CompensationJobsException):
    """Missing or wrong trigger token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(
        self, message: str = "Unauthorized", details: dict[str, Any] | None = None
    ):
        super().__init__(message, details=details)


class JobStoreUnavailableError(CompensationJobsException):
    """The jobs table could not be reached; the poll cycle was abandoned."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str = "Job store unavailable",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Error envelope shared by every handler below."""
    return {
        "ok": False,
        "error": {"message": message, "code": status_code, "details": details or {}},
        "request_id": request_id,
        "timestamp": _now(),
    }


def create_success_response(
    data: Any, message: str | None = None, request_id: str | None = None
) -> dict[str, Any]:
    """Success envelope for the operator endpoints."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "request_id": request_id,
        "timestamp": _now(),
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error_json(
    request: Request,
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            status_code, message, details=details, request_id=_request_id(request)
        ),
    )


async def app_exception_handler(
    request: Request, exc: CompensationJobsException
) -> JSONResponse:
    # Client errors (bad token, bad payload) are routine; 5xx are not
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        exception=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )
    return _error_json(request, exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail)
    return _error_json(request, exc.status_code, str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback and hide the details from the caller."""
    logger.error(
        "Unhandled exception",
        exception=exc.__class__.__name__,
        message=str(exc),
        exc_info=True,
    )
    return _error_json(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id into the log context and echoes it as X-Request-ID."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        add_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
