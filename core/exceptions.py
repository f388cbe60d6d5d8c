"""
Exception hierarchy and global exception handlers for the FastAPI application.

Every error leaves the API in the same envelope:
``{"error": {"type": ..., "message": ..., "status_code": ...}}``.
"""
import traceback
from fastapi import Request, status
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
import structlog

logger = structlog.get_logger("exceptions")


class APIException(Exception):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "Internal server error",
        headers: dict = None
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.headers = headers or {}


class DatabaseException(APIException):
    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


class AuthenticationException(APIException):
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class AuthorizationException(APIException):
    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class BadRequestException(APIException):
    """Input that is well formed but cannot be processed (empty text, unknown skin...)."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class ValidationException(APIException):
    def __init__(self, detail: str = "Validation failed", errors: list = None):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, detail)
        self.errors = errors or []


class ResourceNotFoundException(APIException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class AIServiceException(APIException):
    """Raised when no provider is configured or the provider call fails."""

    def __init__(self, detail: str = "AI service error", provider: str = None):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail)
        self.provider = provider


class PaymentServiceException(APIException):
    """Raised when the payment processor rejects or fails a billing call."""

    def __init__(self, detail: str = "Payment service error"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)


class StorageException(APIException):
    """Raised when an object storage operation fails."""

    def __init__(self, detail: str = "Storage operation failed"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


def _error_body(error_type: str, message, status_code: int, **extra) -> dict:
    body = {"type": error_type, "message": message, "status_code": status_code}
    body.update(extra)
    return {"error": body}


def _request_fields(request: Request) -> dict:
    return {
        "path": str(request.url.path),
        "method": request.method,
        "client_host": request.client.host if request.client else None,
    }


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle the application's own exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "API exception occurred",
        exception_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.detail,
        **_request_fields(request)
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(type(exc).__name__, exc.detail, exc.status_code),
        headers=exc.headers
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        **_request_fields(request)
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTPException", exc.detail, exc.status_code),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.warning("Validation error occurred", errors=errors, **_request_fields(request))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            "ValidationError",
            "Request validation failed",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=errors
        )
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Database error occurred",
        exception_type=type(exc).__name__,
        error_detail=str(exc),
        **_request_fields(request)
    )

    if isinstance(exc, IntegrityError):
        detail, status_code = "Database constraint violation", status.HTTP_400_BAD_REQUEST
    else:
        detail, status_code = "Database operation failed", status.HTTP_500_INTERNAL_SERVER_ERROR

    return JSONResponse(status_code=status_code, content=_error_body("DatabaseError", detail, status_code))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception occurred",
        exception_type=type(exc).__name__,
        error_detail=str(exc),
        stack=traceback.format_exc(),
        **_request_fields(request)
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "InternalServerError",
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    )


def setup_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
