"""
Request context middleware for structured logging.
"""

from __future__ import annotations

import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from taskpilot.infra.config.logging_config import bind_context, clear_context, get_logger

REQUEST_ID_HEADER = "X-Request-ID"
CALLER_HEADER = "X-User-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlates every log line of a request.

    Binds the request id (taken from ``X-Request-ID`` or generated) and the
    calling user, times the request, and echoes the id on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        bind_context(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            caller_id=request.headers.get(CALLER_HEADER),
        )
        logger = get_logger("http")
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("request.error", error_type=type(exc).__name__)
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "request.end",
                status_code=response.status_code,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            return response
        finally:
            clear_context()
