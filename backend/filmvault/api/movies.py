"""
Movie Service — /v1/movies
──────────────────────────
Endpoints:
  GET    /v1/movies          — Filtered, sorted, paginated listing   (movies:read)
  POST   /v1/movies          — Create a movie                        (movies:write)
  GET    /v1/movies/{id}     — Single movie                          (movies:read)
  PATCH  /v1/movies/{id}     — Partial update, version-checked       (movies:write)
  DELETE /v1/movies/{id}     — Delete a movie                        (movies:write)
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from filmvault.api.errors import edit_conflict, failed_validation, not_found
from filmvault.core.validator import Validator
from filmvault.db.models import Movie, User
from filmvault.db.session import get_db
from filmvault.deps.auth import require_permission
from filmvault.deps.body import json_body
from filmvault.deps.query import read_csv, read_id_param, read_int, read_string
from filmvault.schemas.movies import (
    CreateMovieRequest,
    MessageResponse,
    MetadataResponse,
    MovieEnvelope,
    MovieListResponse,
    MovieResponse,
    UpdateMovieRequest,
)
from filmvault.services.errors import EditConflictError, RecordNotFoundError
from filmvault.services.filters import Filters, validate_filters
from filmvault.services.movie_service import (
    MOVIE_SORT_SAFELIST,
    delete_movie,
    get_movie,
    insert_movie,
    list_movies,
    update_movie,
    validate_movie,
)
from filmvault.services.permission_service import MOVIES_READ, MOVIES_WRITE

router = APIRouter()

can_read = require_permission(MOVIES_READ)
can_write = require_permission(MOVIES_WRITE)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=MovieListResponse, response_model_exclude_none=True)
def list_movies_handler(
    request: Request,
    _user: User = Depends(can_read),
    db: Session = Depends(get_db),
) -> MovieListResponse:
    """
    Query params: title (full-text), genres (comma separated, all must match),
    page, page_size, sort (id/title/year/runtime, "-" prefix for descending).
    """
    v = Validator()
    title = read_string(request, "title")
    genres = read_csv(request, "genres")
    filters = Filters(
        page=read_int(request, "page", 1, v),
        page_size=read_int(request, "page_size", 20, v),
        sort=read_string(request, "sort", "id"),
        sort_safelist=MOVIE_SORT_SAFELIST,
    )

    validate_filters(v, filters)
    if not v.valid():
        raise failed_validation(v.errors)

    movies, metadata = list_movies(db, title, genres, filters)
    return MovieListResponse(
        movies=[MovieResponse.model_validate(m) for m in movies],
        metadata=MetadataResponse.from_metadata(metadata),
    )


@router.post("", response_model=MovieEnvelope, status_code=status.HTTP_201_CREATED)
def create_movie_handler(
    response: Response,
    _user: User = Depends(can_write),
    payload: CreateMovieRequest = Depends(json_body(CreateMovieRequest)),
    db: Session = Depends(get_db),
) -> MovieEnvelope:
    movie = Movie(
        title=payload.title,
        year=payload.year,
        runtime=payload.runtime,
        genres=payload.genres,
    )

    v = Validator()
    validate_movie(v, movie)
    if not v.valid():
        raise failed_validation(v.errors)

    movie = insert_movie(db, movie)

    response.headers["Location"] = f"/v1/movies/{movie.id}"
    return MovieEnvelope(movie=MovieResponse.model_validate(movie))


@router.get("/{id}", response_model=MovieEnvelope)
def show_movie_handler(
    _user: User = Depends(can_read),
    movie_id: int = Depends(read_id_param),
    db: Session = Depends(get_db),
) -> MovieEnvelope:
    try:
        movie = get_movie(db, movie_id)
    except RecordNotFoundError as exc:
        raise not_found() from exc

    return MovieEnvelope(movie=MovieResponse.model_validate(movie))


@router.patch("/{id}", response_model=MovieEnvelope)
def update_movie_handler(
    _user: User = Depends(can_write),
    movie_id: int = Depends(read_id_param),
    payload: UpdateMovieRequest = Depends(json_body(UpdateMovieRequest)),
    db: Session = Depends(get_db),
) -> MovieEnvelope:
    """Apply only the fields present (and non-null) in the body, then write back at the read version."""
    try:
        movie = get_movie(db, movie_id)
    except RecordNotFoundError as exc:
        raise not_found() from exc

    if payload.title is not None:
        movie.title = payload.title
    if payload.year is not None:
        movie.year = payload.year
    if payload.runtime is not None:
        movie.runtime = payload.runtime
    if payload.genres is not None:
        movie.genres = payload.genres

    v = Validator()
    validate_movie(v, movie)
    if not v.valid():
        raise failed_validation(v.errors)

    try:
        movie = update_movie(db, movie)
    except EditConflictError as exc:
        raise edit_conflict() from exc

    return MovieEnvelope(movie=MovieResponse.model_validate(movie))


@router.delete("/{id}", response_model=MessageResponse)
def delete_movie_handler(
    _user: User = Depends(can_write),
    movie_id: int = Depends(read_id_param),
    db: Session = Depends(get_db),
) -> MessageResponse:
    try:
        delete_movie(db, movie_id)
    except RecordNotFoundError as exc:
        raise not_found() from exc

    return MessageResponse(message="movie successfully deleted")
