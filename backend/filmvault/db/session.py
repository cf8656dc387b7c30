"""
SQLAlchemy engine + session factory.
Import *get_db* as a FastAPI dependency in route handlers.
"""
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from filmvault.core.config import Settings, settings


def build_engine(config: Settings) -> Engine:
    """
    Create the pooled engine described by *config*.

    Every Postgres connection carries a statement_timeout so that no single
    store call can outlive DB_QUERY_TIMEOUT_SECONDS.
    """
    timeout_ms = int(config.DB_QUERY_TIMEOUT_SECONDS * 1000)
    return create_engine(
        config.DATABASE_URL,
        # Health-check connections before handing them to the app
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        # Drop connections that sat idle in the pool for too long
        pool_recycle=config.DB_POOL_RECYCLE_SECONDS,
        connect_args={
            "connect_timeout": int(config.DB_QUERY_TIMEOUT_SECONDS) or 1,
            "options": f"-c statement_timeout={timeout_ms}",
        },
    )


engine = build_engine(settings)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Avoid lazy-load errors after commit
)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a scoped DB session.

    The factory lives on app.state so an app built for tests can point at a
    different engine without touching module globals.

    Usage:
        @router.get("/items")
        def list_items(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
