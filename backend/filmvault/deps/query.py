"""
Query-string and path parameter readers.

Parse failures are recorded on a Validator (query values) or turned into a
404 (path ids) instead of FastAPI's default 422 shape.
"""
from fastapi import Request

from filmvault.api.errors import not_found
from filmvault.core.validator import Validator

# Largest value a BIGINT primary key can hold
MAX_ID = 2**63 - 1


def read_string(request: Request, key: str, default: str = "") -> str:
    return request.query_params.get(key) or default


def read_csv(request: Request, key: str, default: list[str] | None = None) -> list[str]:
    value = request.query_params.get(key)
    if not value:
        return list(default or [])
    return value.split(",")


def read_int(request: Request, key: str, default: int, v: Validator) -> int:
    value = request.query_params.get(key)
    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        v.add_error(key, "must be an integer value")
        return default


def read_id_param(id: str) -> int:
    """Path dependency: positive integer id within BIGINT range, anything else is a 404."""
    if not (id.isascii() and id.isdecimal()):
        raise not_found()
    movie_id = int(id)
    if movie_id < 1 or movie_id > MAX_ID:
        raise not_found()
    return movie_id
