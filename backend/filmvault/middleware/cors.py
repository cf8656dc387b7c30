"""
CORS middleware driven by an exact-match trusted origin list.

A matching Origin is echoed back in Access-Control-Allow-Origin. A matching
preflight (OPTIONS carrying Access-Control-Request-Method) is answered here
with 200 and never reaches the router.
"""
from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOWED_METHODS = "OPTIONS, PUT, PATCH, DELETE"
ALLOWED_HEADERS = "Authorization, Content-Type"


class CORSMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, trusted_origins: Iterable[str]) -> None:
        super().__init__(app)
        self.trusted_origins = frozenset(trusted_origins)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = request.headers.get("Origin", "")
        trusted = bool(origin) and origin in self.trusted_origins
        preflight = (
            trusted
            and request.method == "OPTIONS"
            and bool(request.headers.get("Access-Control-Request-Method"))
        )

        if preflight:
            response = Response(status_code=200)
            response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        else:
            response = await call_next(request)

        # Responses differ per Origin and per preflight method, so caches must key on both
        response.headers.append("Vary", "Origin")
        response.headers.append("Vary", "Access-Control-Request-Method")
        if trusted:
            response.headers["Access-Control-Allow-Origin"] = origin

        return response
