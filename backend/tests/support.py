"""
Shared fixtures for the test modules: an in-memory SQLite store with the
permission codes seeded, and an app wired to it.
"""
from datetime import timedelta

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filmvault.core.config import Settings
from filmvault.core.security import SCOPE_AUTHENTICATION
from filmvault.db.models import Base, Movie, Permission, User
from filmvault.main import create_app
from filmvault.services.movie_service import insert_movie
from filmvault.services.permission_service import MOVIES_READ, MOVIES_WRITE, add_for_user
from filmvault.services.token_service import new_token
from filmvault.services.user_service import insert_user


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

    with factory() as db:
        db.add_all([Permission(code=MOVIES_READ), Permission(code=MOVIES_WRITE)])
        db.commit()
    return factory


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "APP_ENV": "testing",
        "LIMITER_ENABLED": False,
        "CORS_TRUSTED_ORIGINS": [],
        "TRUSTED_PROXIES": [],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_app(**overrides):
    """Return (app, session_factory) for a fresh, empty store."""
    factory = make_session_factory()
    return create_app(make_settings(**overrides), factory), factory


def create_user(
    factory: sessionmaker,
    email: str = "alice@example.com",
    activated: bool = True,
    permissions: tuple[str, ...] = (MOVIES_READ,),
    password_hash: str = "not-a-real-hash",
) -> User:
    with factory() as db:
        user = insert_user(
            db,
            User(name="Alice", email=email, password_hash=password_hash, activated=activated),
        )
        if permissions:
            add_for_user(db, user.id, *permissions)
    return user


def auth_header(factory: sessionmaker, user: User, ttl: timedelta = timedelta(hours=1)) -> dict[str, str]:
    with factory() as db:
        token = new_token(db, user.id, ttl, SCOPE_AUTHENTICATION)
    return {"Authorization": f"Bearer {token.plaintext}"}


def create_movie(factory: sessionmaker, **overrides) -> Movie:
    values = {"title": "Moana", "year": 2016, "runtime": 107, "genres": ["animation", "adventure"]}
    values.update(overrides)
    with factory() as db:
        return insert_movie(db, Movie(**values))
