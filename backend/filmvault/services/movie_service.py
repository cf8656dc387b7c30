"""
Movie store — CRUD with optimistic concurrency, plus filtered listing.

Handlers receive detached Movie instances: edits made to them are only
written back through update_movie(), which checks the version they carry.
"""
from datetime import datetime, timezone

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.orm import Session

from filmvault.core.validator import Validator, unique
from filmvault.db.models import Movie
from filmvault.services.errors import EditConflictError, RecordNotFoundError
from filmvault.services.filters import Filters, Metadata, calculate_metadata

MOVIE_SORT_SAFELIST = ("id", "title", "year", "runtime", "-id", "-title", "-year", "-runtime")

_SORT_COLUMNS = {
    "id": Movie.id,
    "title": Movie.title,
    "year": Movie.year,
    "runtime": Movie.runtime,
}


# ── Validation ────────────────────────────────────────────────────────────────

def validate_movie(v: Validator, movie: Movie) -> None:
    title = movie.title or ""
    v.check(title != "", "title", "must be provided")
    v.check(len(title.encode()) <= 500, "title", "must not be more than 500 bytes long")

    year = movie.year or 0
    v.check(year != 0, "year", "must be provided")
    v.check(year >= 1888, "year", "must be greater than 1888")
    v.check(year <= datetime.now(timezone.utc).year, "year", "must not be in the future")

    runtime = movie.runtime or 0
    v.check(runtime != 0, "runtime", "must be provided")
    v.check(runtime > 0, "runtime", "must be a positive integer")

    v.check(movie.genres is not None, "genres", "must be provided")
    genres = movie.genres or []
    v.check(len(genres) >= 1, "genres", "must contain at least 1 genre")
    v.check(len(genres) <= 5, "genres", "must not contain more than 5 genres")
    v.check(unique(genres), "genres", "must not contain duplicate values")


# ── Store operations ──────────────────────────────────────────────────────────

def insert_movie(db: Session, movie: Movie) -> Movie:
    """Insert *movie*; the store fills in id, created_at and version."""
    db.add(movie)
    db.commit()
    db.refresh(movie)
    db.expunge(movie)
    return movie


def get_movie(db: Session, movie_id: int) -> Movie:
    """Fetch a single movie by primary key, or raise RecordNotFoundError."""
    if movie_id < 1:
        raise RecordNotFoundError()

    movie = db.get(Movie, movie_id)
    if movie is None:
        raise RecordNotFoundError()

    db.expunge(movie)
    return movie


def update_movie(db: Session, movie: Movie) -> Movie:
    """
    Write every field of *movie* back, conditioned on the version it carries.

    On success movie.version is set to the incremented value. If another
    writer got there first no row matches and EditConflictError is raised.
    """
    stmt = (
        update(Movie)
        .where(Movie.id == movie.id, Movie.version == movie.version)
        .values(
            title=movie.title,
            year=movie.year,
            runtime=movie.runtime,
            genres=list(movie.genres),
            version=Movie.version + 1,
        )
        .returning(Movie.version)
        .execution_options(synchronize_session=False)
    )
    new_version = db.execute(stmt).scalar_one_or_none()
    if new_version is None:
        db.rollback()
        raise EditConflictError()

    db.commit()
    movie.version = new_version
    return movie


def delete_movie(db: Session, movie_id: int) -> None:
    if movie_id < 1:
        raise RecordNotFoundError()

    result = db.execute(delete(Movie).where(Movie.id == movie_id))
    if result.rowcount == 0:
        db.rollback()
        raise RecordNotFoundError()

    db.commit()


def build_list_query(title: str, genres: list[str], filters: Filters) -> Select:
    """
    Build the paginated listing query.

    An empty title or genre list matches everything. The window count rides
    along on every row so pagination metadata needs no second round trip, and
    id ASC breaks ties so pages are stable.
    """
    column = _SORT_COLUMNS[filters.sort_column()]
    order = column.desc() if filters.sort_descending() else column.asc()

    stmt = select(func.count().over().label("total_records"), Movie)
    if title:
        stmt = stmt.where(
            func.to_tsvector("simple", Movie.title).bool_op("@@")(
                func.plainto_tsquery("simple", title)
            )
        )
    if genres:
        stmt = stmt.where(Movie.genres.contains(genres))

    return (
        stmt.order_by(order, Movie.id.asc())
        .limit(filters.limit())
        .offset(filters.offset())
    )


def list_movies(
    db: Session,
    title: str,
    genres: list[str],
    filters: Filters,
) -> tuple[list[Movie], Metadata]:
    rows = db.execute(build_list_query(title, genres, filters)).all()

    total_records = 0
    movies: list[Movie] = []
    for total, movie in rows:
        total_records = total
        movies.append(movie)

    return movies, calculate_metadata(total_records, filters.page, filters.page_size)
