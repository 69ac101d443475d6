"""Domain errors and the uniform error envelope"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

logger = structlog.get_logger()


class ReservationError(Exception):
    """Base error carrying a stable code for API clients"""

    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(ReservationError):
    """Malformed or out-of-range input"""

    status_code = 400
    default_code = "INVALID_INPUT"


class NotFoundError(ReservationError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(ReservationError):
    """No table available, or the table was lost to a concurrent booking"""

    status_code = 409
    default_code = "NO_AVAILABILITY"


class IllegalTransitionError(ReservationError):
    """Status change not allowed from the reservation's current state"""

    status_code = 400
    default_code = "INVALID_OPERATION"


class InternalError(ReservationError):
    """Storage or collaborator failure; nothing was committed"""

    status_code = 500
    default_code = "INTERNAL_ERROR"


HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def reservation_error_handler(request: Request, exc: ReservationError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid input")
    else:
        message = "Invalid input"
    return JSONResponse(status_code=422, content=error_body("INVALID_INPUT", message))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "An unexpected error occurred"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers so every error response uses the same envelope"""
    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
