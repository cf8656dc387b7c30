"""
SQLAlchemy ORM models.

Schema mirrors the Alembic migrations (TEXT[] genres, BYTEA token hashes,
CITEXT email mapped as String). ARRAY columns fall back to JSON on SQLite
so the models also run against an in-memory engine.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase


# ── Base ──────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Timestamp helper ──────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# BIGSERIAL on Postgres, INTEGER PRIMARY KEY (rowid alias) on SQLite
_Identity = BigInteger().with_variant(Integer(), "sqlite")
_TextArray = ARRAY(Text).with_variant(JSON(), "sqlite")


# ── Association tables ────────────────────────────────────────────────────────

users_permissions = Table(
    "users_permissions",
    Base.metadata,
    Column("user_id", _Identity, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", _Identity, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


# ── Models ────────────────────────────────────────────────────────────────────

class Movie(Base):
    """A catalog entry. *version* is bumped by every successful update."""
    __tablename__ = "movies"

    id = Column(_Identity, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    title = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)
    runtime = Column(Integer, nullable=False)
    genres = Column(_TextArray, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("runtime >= 0", name="movies_runtime_check"),
    )

    def __repr__(self) -> str:
        return f"<Movie id={self.id} title={self.title!r} version={self.version}>"


class User(Base):
    """
    email keeps the case it was registered with. Uniqueness ignores case:
    citext in Postgres, plus a unique index on lower(email) on every backend.
    """
    __tablename__ = "users"

    id = Column(_Identity, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    name = Column(Text, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    activated = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


Index("users_email_lower_key", func.lower(User.email), unique=True)


class Token(Base):
    """Hashed bearer token. The plaintext never reaches this table."""
    __tablename__ = "tokens"

    hash = Column(LargeBinary, primary_key=True)
    user_id = Column(_Identity, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expiry = Column(DateTime(timezone=True), nullable=False)
    scope = Column(Text, nullable=False)


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(_Identity, primary_key=True, autoincrement=True)
    code = Column(Text, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission {self.code}>"
