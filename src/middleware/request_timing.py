"""Correlation ID and slow-request logging middleware."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

import logfire

from src.constants import SLOW_REQUEST_THRESHOLD_MS


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation ID and flag slow responses.

    The scrape endpoint must answer immediately no matter how large the
    batch, so any request slower than ``slow_threshold_ms`` is logged as a
    warning with its method, path and duration.
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Correlation-ID",
        slow_threshold_ms: float = SLOW_REQUEST_THRESHOLD_MS,
    ):
        """
        Initialize the middleware.

        Args:
            app: ASGI application
            header_name: HTTP header carrying the correlation ID
            slow_threshold_ms: Requests slower than this are logged
        """
        super().__init__(app)
        self.header_name = header_name
        self.slow_threshold_ms = slow_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse the caller's correlation ID or generate a new one
        correlation_id = request.headers.get(self.header_name.lower()) or str(
            uuid.uuid4()
        )
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        with logfire.span(
            "{method} {path}",
            method=request.method,
            path=request.url.path,
            correlation_id=correlation_id,
        ):
            response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers[self.header_name] = correlation_id
        if duration_ms > self.slow_threshold_ms:
            logfire.warning(
                "Slow API request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                correlation_id=correlation_id,
            )
        return response
