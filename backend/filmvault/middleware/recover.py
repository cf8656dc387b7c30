"""
Last-resort exception handler.

Anything that escapes the layers below is logged with its traceback and
turned into a generic 500. The connection is closed because the failed
request may have left it in an undefined state.
"""
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from filmvault.api.errors import log_error, server_error_response


class RecoverMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            log_error(request, exc)
            response = server_error_response()
            response.headers["Connection"] = "close"
            return response
