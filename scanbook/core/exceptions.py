"""Custom exception classes and handlers."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BusinessLogicError(Exception):
    """Raised for domain-specific validation errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class InvalidRequestError(BusinessLogicError):
    """Malformed input, out-of-range values or past dates."""

    def __init__(self, detail: str):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST)


class NotFoundError(BusinessLogicError):
    def __init__(self, detail: str):
        super().__init__(detail, status.HTTP_404_NOT_FOUND)


class ConflictError(BusinessLogicError):
    """Duplicate records or writes blocked by dependent data."""

    def __init__(self, detail: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(detail, status_code)


def _error_body(message: str) -> dict:
    return {"success": False, "message": message}


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI app."""

    @app.exception_handler(BusinessLogicError)
    async def _business_error_handler(_: Request, exc: BusinessLogicError):
        return JSONResponse(_error_body(exc.detail), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(_: Request, exc: RequestValidationError):
        return JSONResponse(
            _error_body(_describe_validation_error(exc)),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(_: Request, exc: StarletteHTTPException):
        return JSONResponse(
            _error_body(str(exc.detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            _error_body("Server error"),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
