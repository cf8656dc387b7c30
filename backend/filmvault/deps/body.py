"""
Strict JSON request body reader.

Bodies are capped at MAX_BODY_BYTES, must hold exactly one JSON object and
may only use the keys the target model declares. Every failure becomes a 400
whose message says what was wrong with the body.
"""
import json
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from filmvault.api.errors import bad_request

MAX_BODY_BYTES = 1_048_576

ModelT = TypeVar("ModelT", bound=BaseModel)

_decoder = json.JSONDecoder()


def decode_json(raw: bytes) -> Any:
    """Decode a single JSON value from *raw*, raising ValueError with a client-facing message."""
    if len(raw) > MAX_BODY_BYTES:
        raise ValueError(f"body must not be larger than {MAX_BODY_BYTES} bytes")

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"body contains badly-formed JSON (at character {exc.start})") from exc

    stripped = text.strip()
    if not stripped:
        raise ValueError("body must not be empty")

    start = len(text) - len(text.lstrip())
    try:
        value, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        # An error at the very end of the input means the value was cut short
        if exc.pos >= len(text.rstrip()) or exc.msg.startswith("Unterminated string"):
            raise ValueError("body contains badly-formed JSON") from exc
        raise ValueError(f"body contains badly-formed JSON (at character {exc.pos + 1})") from exc

    if text[end:].strip():
        raise ValueError("body must only contain a single JSON value")

    return value


def _describe(exc: ValidationError) -> str:
    error = exc.errors()[0]
    field = str(error["loc"][0]) if error["loc"] else ""

    if error["type"] == "extra_forbidden":
        return f'body contains unknown key "{field}"'
    if error["type"] == "runtime_format":
        return error["msg"]
    if not field:
        return "body contains incorrect JSON type (at character 1)"
    return f'body contains incorrect JSON type for field "{field}"'


def parse_body(model: type[ModelT], raw: bytes) -> ModelT:
    try:
        value = decode_json(raw)
    except ValueError as exc:
        raise bad_request(str(exc)) from exc

    if not isinstance(value, dict):
        raise bad_request("body contains incorrect JSON type (at character 1)")

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise bad_request(_describe(exc)) from exc


async def read_body(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    """
    Read the raw request body, refusing anything over *limit* bytes.

    An oversized Content-Length is refused before reading; otherwise the
    stream is abandoned as soon as the running total passes the limit.
    """
    too_large = f"body must not be larger than {limit} bytes"

    declared = request.headers.get("Content-Length", "")
    if declared.isascii() and declared.isdecimal() and int(declared) > limit:
        raise bad_request(too_large)

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise bad_request(too_large)
        chunks.append(chunk)
    return b"".join(chunks)


def json_body(model: type[ModelT]) -> Callable[[Request], Coroutine[Any, Any, ModelT]]:
    """
    Build a dependency that reads the request body into *model*.

    *model* should forbid extra keys and run in strict mode so wrong JSON
    types are reported instead of coerced.
    """

    async def dependency(request: Request) -> ModelT:
        raw = await read_body(request)
        return parse_body(model, raw)

    return dependency
