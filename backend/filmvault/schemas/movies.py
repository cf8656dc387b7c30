"""
Movie request/response schemas.

Runtime travels as a JSON string of the form ``"<n> mins"`` in both
directions; the store keeps the bare integer.
"""
import re
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, field_serializer
from pydantic_core import PydanticCustomError

from filmvault.services.filters import Metadata

_RUNTIME_RX = re.compile(r"^[+-]?\d+$")
_INT32_MAX = 2**31 - 1


def format_runtime(minutes: int) -> str:
    return f"{minutes} mins"


def parse_runtime(value: Any) -> Optional[int]:
    """Parse ``"<n> mins"`` into n. None passes through as "not supplied"."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise PydanticCustomError("runtime_format", "invalid runtime format")

    parts = value.split(" ")
    if len(parts) != 2 or parts[1] != "mins" or not _RUNTIME_RX.match(parts[0]):
        raise PydanticCustomError("runtime_format", "invalid runtime format")

    minutes = int(parts[0])
    if abs(minutes) > _INT32_MAX:
        raise PydanticCustomError("runtime_format", "invalid runtime format")
    return minutes


Runtime = Annotated[Optional[int], BeforeValidator(parse_runtime)]


class CreateMovieRequest(BaseModel):
    """Payload for POST /v1/movies. Presence is checked by the validator, not here."""

    title: Optional[str] = None
    year: Optional[int] = None
    runtime: Runtime = None
    genres: Optional[list[str]] = None

    model_config = ConfigDict(extra="forbid", strict=True)


class UpdateMovieRequest(CreateMovieRequest):
    """Payload for PATCH /v1/movies/{id}. Absent or null fields keep their value."""


class MovieResponse(BaseModel):
    id: int
    title: str
    year: int
    runtime: int
    genres: list[str]
    version: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("runtime", when_used="json")
    def serialize_runtime(self, runtime: int) -> str:
        return format_runtime(runtime)


class MovieEnvelope(BaseModel):
    movie: MovieResponse


class MetadataResponse(BaseModel):
    """Pagination metadata; every field is left out when nothing matched."""

    current_page: Optional[int] = None
    page_size: Optional[int] = None
    first_page: Optional[int] = None
    last_page: Optional[int] = None
    total_records: Optional[int] = None

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> "MetadataResponse":
        if metadata.total_records == 0:
            return cls()
        return cls(
            current_page=metadata.current_page,
            page_size=metadata.page_size,
            first_page=metadata.first_page,
            last_page=metadata.last_page,
            total_records=metadata.total_records,
        )


class MovieListResponse(BaseModel):
    movies: list[MovieResponse]
    metadata: MetadataResponse


class MessageResponse(BaseModel):
    message: str
