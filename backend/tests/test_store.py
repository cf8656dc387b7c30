import unittest
from datetime import datetime, timedelta, timezone

from filmvault.core.security import (
    SCOPE_ACTIVATION,
    SCOPE_AUTHENTICATION,
    MissingPasswordHashError,
    Password,
    generate_token,
)
from filmvault.core.validator import Validator
from filmvault.db.models import Movie, User
from filmvault.services.errors import DuplicateEmailError, EditConflictError, RecordNotFoundError
from filmvault.services.filters import Filters
from filmvault.services.movie_service import (
    MOVIE_SORT_SAFELIST,
    delete_movie,
    get_movie,
    list_movies,
    update_movie,
    validate_movie,
)
from filmvault.services.permission_service import MOVIES_READ, MOVIES_WRITE, add_for_user, get_all_for_user
from filmvault.services.token_service import delete_all_for_user, insert_token, new_token
from filmvault.services.user_service import (
    get_user_by_email,
    get_user_for_token,
    insert_user,
    update_user,
    validate_user,
)
from support import create_movie, create_user, make_session_factory


class TestMovieValidation(unittest.TestCase):
    def test_valid_movie(self) -> None:
        v = Validator()
        validate_movie(v, Movie(title="Moana", year=2016, runtime=107, genres=["animation"]))
        self.assertTrue(v.valid())

    def test_reports_every_field(self) -> None:
        v = Validator()
        validate_movie(v, Movie(title="", year=1800, runtime=-1, genres=["a", "a"]))
        self.assertEqual(
            v.errors,
            {
                "title": "must be provided",
                "year": "must be greater than 1888",
                "runtime": "must be a positive integer",
                "genres": "must not contain duplicate values",
            },
        )

    def test_missing_fields(self) -> None:
        v = Validator()
        validate_movie(v, Movie())
        self.assertEqual(v.errors["year"], "must be provided")
        self.assertEqual(v.errors["runtime"], "must be provided")
        self.assertEqual(v.errors["genres"], "must be provided")

    def test_future_year_and_genre_bounds(self) -> None:
        v = Validator()
        validate_movie(
            v,
            Movie(title="T", year=datetime.now(timezone.utc).year + 1, runtime=90, genres=list("abcdef")),
        )
        self.assertEqual(v.errors["year"], "must not be in the future")
        self.assertEqual(v.errors["genres"], "must not contain more than 5 genres")


class TestMovieStore(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()

    def test_insert_then_get_round_trips_fields(self) -> None:
        created = create_movie(self.factory)
        self.assertEqual(created.version, 1)
        self.assertIsNotNone(created.created_at)

        with self.factory() as db:
            fetched = get_movie(db, created.id)

        self.assertEqual(
            (fetched.title, fetched.year, fetched.runtime, fetched.genres),
            ("Moana", 2016, 107, ["animation", "adventure"]),
        )

    def test_get_rejects_non_positive_and_missing_ids(self) -> None:
        with self.factory() as db:
            with self.assertRaises(RecordNotFoundError):
                get_movie(db, 0)
            with self.assertRaises(RecordNotFoundError):
                get_movie(db, 999)

    def test_update_increments_version(self) -> None:
        movie = create_movie(self.factory)
        movie.title = "Moana 2"

        with self.factory() as db:
            updated = update_movie(db, movie)
        self.assertEqual(updated.version, 2)

        with self.factory() as db:
            fetched = get_movie(db, movie.id)
        self.assertEqual(fetched.title, "Moana 2")
        self.assertEqual(fetched.version, 2)

    def test_stale_update_is_an_edit_conflict(self) -> None:
        created = create_movie(self.factory)
        with self.factory() as db:
            first = get_movie(db, created.id)
            second = get_movie(db, created.id)

        first.year = 2017
        with self.factory() as db:
            update_movie(db, first)

        second.runtime = 120
        with self.factory() as db:
            with self.assertRaises(EditConflictError):
                update_movie(db, second)
            self.assertEqual(get_movie(db, created.id).runtime, 107)

    def test_delete(self) -> None:
        movie = create_movie(self.factory)
        with self.factory() as db:
            delete_movie(db, movie.id)
            with self.assertRaises(RecordNotFoundError):
                get_movie(db, movie.id)
            with self.assertRaises(RecordNotFoundError):
                delete_movie(db, movie.id)
            with self.assertRaises(RecordNotFoundError):
                delete_movie(db, -1)

    def test_pages_are_disjoint_ordered_slices(self) -> None:
        for year in (2001, 1999, 2005, 1999, 2010):
            create_movie(self.factory, title=f"Movie {year}", year=year)

        def page(number: int, size: int):
            with self.factory() as db:
                return list_movies(
                    db, "", [],
                    Filters(page=number, page_size=size, sort="year", sort_safelist=MOVIE_SORT_SAFELIST),
                )

        everything, _ = page(1, 100)
        first, metadata = page(1, 2)
        second, _ = page(2, 2)

        ids = [m.id for m in everything]
        self.assertEqual([m.year for m in everything], [1999, 1999, 2001, 2005, 2010])
        self.assertLess(ids[0], ids[1])
        self.assertEqual([m.id for m in first] + [m.id for m in second], ids[:4])
        self.assertEqual(metadata.total_records, 5)
        self.assertEqual(metadata.last_page, 3)
        self.assertEqual(metadata.current_page, 1)

    def test_empty_page_has_zero_metadata(self) -> None:
        with self.factory() as db:
            movies, metadata = list_movies(
                db, "", [], Filters(sort="-title", sort_safelist=MOVIE_SORT_SAFELIST),
            )
        self.assertEqual(movies, [])
        self.assertEqual(metadata.total_records, 0)
        self.assertEqual(metadata.last_page, 0)


class TestUserStore(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()

    def test_insert_keeps_email_case_and_detects_duplicates(self) -> None:
        user = create_user(self.factory, email="Alice@Example.COM")
        self.assertEqual(user.email, "Alice@Example.COM")
        self.assertTrue(user.activated)
        self.assertEqual(user.version, 1)

        with self.factory() as db:
            with self.assertRaises(DuplicateEmailError):
                insert_user(db, User(name="Other", email="ALICE@example.com", password_hash="x"))
            self.assertEqual(get_user_by_email(db, "alice@EXAMPLE.com").id, user.id)

    def test_get_by_unknown_email(self) -> None:
        with self.factory() as db:
            with self.assertRaises(RecordNotFoundError):
                get_user_by_email(db, "nobody@example.com")

    def test_update_is_versioned(self) -> None:
        user = create_user(self.factory, activated=False)
        stale = User(
            id=user.id, name=user.name, email=user.email,
            password_hash=user.password_hash, activated=False, version=user.version,
        )

        user.activated = True
        with self.factory() as db:
            self.assertEqual(update_user(db, user).version, 2)
            with self.assertRaises(EditConflictError):
                update_user(db, stale)

    def test_update_detects_duplicate_email(self) -> None:
        create_user(self.factory, email="alice@example.com")
        bob = create_user(self.factory, email="bob@example.com")
        bob.email = "ALICE@example.com"

        with self.factory() as db:
            with self.assertRaises(DuplicateEmailError):
                update_user(db, bob)

    def test_validate_user(self) -> None:
        password = Password()
        password.set("short")
        v = Validator()
        validate_user(v, User(name="", email="nope"), password)
        self.assertEqual(
            v.errors,
            {
                "name": "must be provided",
                "email": "must be a valid email address",
                "password": "must be at least 8 bytes long",
            },
        )

    def test_validate_user_without_hash_is_a_programming_error(self) -> None:
        with self.assertRaises(MissingPasswordHashError):
            validate_user(Validator(), User(name="A", email="a@example.com"), Password())


class TestTokenStore(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        self.user = create_user(self.factory)

    def test_token_resolves_to_owner_until_revoked(self) -> None:
        with self.factory() as db:
            token = new_token(db, self.user.id, timedelta(hours=1), SCOPE_AUTHENTICATION)
            self.assertEqual(get_user_for_token(db, SCOPE_AUTHENTICATION, token.plaintext).id, self.user.id)

            with self.assertRaises(RecordNotFoundError):
                get_user_for_token(db, SCOPE_ACTIVATION, token.plaintext)

            delete_all_for_user(db, SCOPE_AUTHENTICATION, self.user.id)
            with self.assertRaises(RecordNotFoundError):
                get_user_for_token(db, SCOPE_AUTHENTICATION, token.plaintext)

    def test_expired_token_is_not_found(self) -> None:
        token = generate_token(self.user.id, timedelta(hours=-1), SCOPE_ACTIVATION)
        with self.factory() as db:
            insert_token(db, token)
            with self.assertRaises(RecordNotFoundError):
                get_user_for_token(db, SCOPE_ACTIVATION, token.plaintext)

    def test_delete_only_touches_one_scope(self) -> None:
        with self.factory() as db:
            activation = new_token(db, self.user.id, timedelta(hours=1), SCOPE_ACTIVATION)
            authentication = new_token(db, self.user.id, timedelta(hours=1), SCOPE_AUTHENTICATION)
            delete_all_for_user(db, SCOPE_ACTIVATION, self.user.id)

            with self.assertRaises(RecordNotFoundError):
                get_user_for_token(db, SCOPE_ACTIVATION, activation.plaintext)
            self.assertEqual(
                get_user_for_token(db, SCOPE_AUTHENTICATION, authentication.plaintext).id,
                self.user.id,
            )


class TestPermissionStore(unittest.TestCase):
    def test_add_and_list(self) -> None:
        factory = make_session_factory()
        user = create_user(factory, permissions=())

        with factory() as db:
            self.assertEqual(get_all_for_user(db, user.id), [])
            add_for_user(db, user.id, MOVIES_READ, MOVIES_WRITE, "movies:unknown")
            permissions = get_all_for_user(db, user.id)

        self.assertTrue(permissions.include(MOVIES_READ))
        self.assertTrue(permissions.include(MOVIES_WRITE))
        self.assertEqual(len(permissions), 2)
