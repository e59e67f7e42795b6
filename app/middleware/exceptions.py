import logging
import uuid
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.core.exceptions import ExamPortalError
from app.schemas.response import ErrorResponse

logger = logging.getLogger(__name__)

# Codes for HTTP errors raised outside the domain layer (auth, routing).
HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _respond(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse.build(
        code=code,
        message=message,
        details=details,
        path=str(request.url),
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"[{_request_id(request)}] Request validation failed: {errors}")
    return _respond(request, 422, "VALIDATION_ERROR", "Request validation failed",
                    details={"validation_errors": errors})


async def global_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, ExamPortalError):
        code, details = exc.code, exc.details
    elif isinstance(exc, HTTPException):
        code, details = HTTP_ERROR_CODES.get(exc.status_code, f"HTTP_{exc.status_code}"), None
    else:
        logger.error(f"[{_request_id(request)}] Unhandled exception: {exc}", exc_info=True)
        return _respond(request, 500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred",
                        details={"error_type": type(exc).__name__})

    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, f"[{_request_id(request)}] {exc.status_code} {code}: {message}")
    return _respond(request, exc.status_code, code, message, details=details)
