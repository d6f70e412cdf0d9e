"""
API error handling and exception mapping.

Converts AI-layer errors into HTTP responses with the status, retry hint and
details of their kind.
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskpilot.api.schemas import ErrorResponse
from taskpilot.domain.errors import AIError
from taskpilot.infra.config.logging_config import get_logger

logger = get_logger("api.errors")


def _respond(status_code: int, error_response: ErrorResponse, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
        headers=headers,
    )


async def ai_error_handler(request: Request, exc: AIError) -> JSONResponse:
    """Map an AI error to its HTTP status; add Retry-After when known."""
    logger.warning("api.ai_error", code=exc.code, message=exc.message)

    headers = None
    retry_after = exc.details.get("retry_after_seconds")
    if retry_after is not None:
        headers = {"Retry-After": str(int(retry_after))}

    error_response = ErrorResponse(
        error=exc.code,
        detail=exc.message,
        retryable=exc.retryable,
        details=dict(exc.details),
    )
    return _respond(exc.http_status, error_response, headers)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning("api.validation_error", errors=len(exc.errors()))

    # Format validation errors for better readability
    formatted_errors = []
    for error in exc.errors():
        location = " -> ".join(str(loc) for loc in error["loc"])
        formatted_errors.append(f"{location}: {error['msg']}")

    error_response = ErrorResponse(
        error="VALIDATION_ERROR",
        detail="Validation failed: " + "; ".join(formatted_errors),
    )
    return _respond(status.HTTP_422_UNPROCESSABLE_ENTITY, error_response)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning("api.http_exception", status_code=exc.status_code, detail=exc.detail)

    error_response = ErrorResponse(
        error=f"HTTP_{exc.status_code}",
        detail=str(exc.detail),
    )
    return _respond(exc.status_code, error_response, exc.headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api.unexpected_error", error_type=type(exc).__name__)

    error_response = ErrorResponse(
        error="INTERNAL_SERVER_ERROR",
        detail="An unexpected error occurred. Please try again later.",
    )
    return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, error_response)


def setup_error_handlers(app) -> None:
    """
    Setup error handlers for the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AIError, ai_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
