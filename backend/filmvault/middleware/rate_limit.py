"""
Per-client-IP rate limiting middleware.

The bucket bookkeeping lives in core.rate_limit.RateLimiter; this layer only
works out who the client is and turns a refusal into a 429.
"""
import logging
from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from filmvault.api.errors import rate_limit_exceeded_response
from filmvault.core.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def client_ip(request: Request, trusted_proxies: frozenset[str]) -> str:
    """
    Real client address for *request*.

    Forwarding headers are honoured only when the immediate peer is a
    trusted proxy; otherwise a client could pick its own bucket.
    """
    peer = request.client.host if request.client else "unknown"
    if peer not in trusted_proxies:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP", "").strip()
    return real_ip or peer


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: RateLimiter, trusted_proxies: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trusted_proxies = frozenset(trusted_proxies)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.limiter.enabled:
            ip = client_ip(request, self.trusted_proxies)
            if not self.limiter.admit(ip):
                logger.warning("Rate limit exceeded for %s", ip)
                return rate_limit_exceeded_response()

        return await call_next(request)
