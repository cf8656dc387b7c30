"""
Error envelope helpers.

Every error body is ``{"error": <message or field map>}``; the status code
carries the category. Handlers raise the HTTPExceptions built here and the
app-level handler in main.py renders them. Middleware, which runs outside the
router, uses error_response() directly.
"""
import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "the server encountered a problem and could not process your request"
INVALID_TOKEN_MESSAGE = "invalid or missing authentication token"


def error_response(
    status_code: int,
    message: Any,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def log_error(request: Request, exc: BaseException) -> None:
    logger.error(
        "%s %s failed: %s",
        request.method,
        request.url,
        exc,
        exc_info=(type(exc), exc, exc.__traceback__),
    )


def server_error_response() -> JSONResponse:
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SERVER_ERROR_MESSAGE)


def invalid_authentication_token_response() -> JSONResponse:
    return error_response(
        status.HTTP_401_UNAUTHORIZED,
        INVALID_TOKEN_MESSAGE,
        headers={"WWW-Authenticate": "Bearer"},
    )


def rate_limit_exceeded_response() -> JSONResponse:
    return error_response(status.HTTP_429_TOO_MANY_REQUESTS, "rate limit exceeded")


# ── Raised from route handlers and dependencies ───────────────────────────────

def not_found() -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, "the requested resource could not be found")


def bad_request(message: str) -> HTTPException:
    return HTTPException(status.HTTP_400_BAD_REQUEST, message)


def failed_validation(errors: dict[str, str]) -> HTTPException:
    return HTTPException(422, dict(errors))


def edit_conflict() -> HTTPException:
    return HTTPException(
        status.HTTP_409_CONFLICT,
        "unable to update the record due to an edit conflict, please try again",
    )


def invalid_credentials() -> HTTPException:
    return HTTPException(status.HTTP_401_UNAUTHORIZED, "invalid authentication credentials")


def authentication_required() -> HTTPException:
    return HTTPException(status.HTTP_401_UNAUTHORIZED, "you must be authenticated to access this resource")


def inactive_account() -> HTTPException:
    return HTTPException(status.HTTP_403_FORBIDDEN, "your user account must be activated to access this resource")


def not_permitted() -> HTTPException:
    return HTTPException(
        status.HTTP_403_FORBIDDEN,
        "your user account doesn't have the necessary permissions to access this resource",
    )
