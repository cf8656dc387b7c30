"""
Request metrics middleware.

Counts requests in and responses out, accumulates processing time and
tallies responses by status code on the shared Metrics instance.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from filmvault.core.metrics import Metrics


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, metrics: Metrics) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        self.metrics.request_received()

        response = await call_next(request)

        duration_us = int((time.perf_counter() - start) * 1_000_000)
        self.metrics.response_sent(response.status_code, duration_us)
        return response
