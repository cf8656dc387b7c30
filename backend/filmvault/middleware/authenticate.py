"""
Bearer-token authentication middleware.

Resolves the Authorization header to an auth state on request.state.auth:
no header means Anonymous, a valid authentication token means
Authenticated(user). Anything else is refused with the same 401, whatever
the reason, so callers cannot probe which tokens exist.
"""
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from filmvault.api.errors import invalid_authentication_token_response
from filmvault.core.context import ANONYMOUS, Authenticated
from filmvault.core.security import SCOPE_AUTHENTICATION, validate_token_plaintext
from filmvault.core.validator import Validator
from filmvault.db.models import User
from filmvault.services.errors import RecordNotFoundError
from filmvault.services.user_service import get_user_for_token


def _lookup_user(session_factory, token: str) -> User | None:
    with session_factory() as db:
        try:
            return get_user_for_token(db, SCOPE_AUTHENTICATION, token)
        except RecordNotFoundError:
            return None


class AuthenticateMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await self._authenticate(request, call_next)
        response.headers.append("Vary", "Authorization")
        return response

    async def _authenticate(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        header = request.headers.get("Authorization", "")
        if not header:
            request.state.auth = ANONYMOUS
            return await call_next(request)

        parts = header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer":
            return invalid_authentication_token_response()

        token = parts[1]
        v = Validator()
        validate_token_plaintext(v, token)
        if not v.valid():
            return invalid_authentication_token_response()

        user = await run_in_threadpool(_lookup_user, request.app.state.session_factory, token)
        if user is None:
            return invalid_authentication_token_response()

        request.state.auth = Authenticated(user)
        return await call_next(request)
