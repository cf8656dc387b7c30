"""
User store — registration, lookup, optimistic update and token resolution.

All DB writes go through this layer (not directly in routes).
"""
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filmvault.core.security import MissingPasswordHashError, Password, hash_token, validate_password_plaintext
from filmvault.core.validator import EMAIL_RX, Validator, matches
from filmvault.db.models import Token, User
from filmvault.services.errors import (
    DuplicateEmailError,
    EditConflictError,
    RecordNotFoundError,
    is_unique_violation,
)


# ── Validation ────────────────────────────────────────────────────────────────

def validate_email(v: Validator, email: str) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(matches(email, EMAIL_RX), "email", "must be a valid email address")


def validate_user(v: Validator, user: User, password: Password) -> None:
    """
    Check name, email and (when set in this request) the plaintext password.

    A user without a password hash can only come from a coding error, never
    from client input, so that case raises instead of recording a failure.
    """
    name = user.name or ""
    v.check(name != "", "name", "must be provided")
    v.check(len(name.encode()) <= 500, "name", "must not be more than 500 bytes long")

    validate_email(v, user.email or "")

    if password.plaintext is not None:
        validate_password_plaintext(v, password.plaintext)

    if password.hash is None:
        raise MissingPasswordHashError("missing password hash for user")


# ── Store operations ──────────────────────────────────────────────────────────

def insert_user(db: Session, user: User) -> User:
    """
    Insert *user*; the store fills in id, created_at and version.

    Raises DuplicateEmailError on the unique-email constraint.
    """
    db.add(user)

    try:
        db.flush()  # trigger INSERT; raises on duplicate
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise DuplicateEmailError() from exc
        raise

    db.commit()
    db.refresh(user)
    db.expunge(user)
    return user


def get_user_by_email(db: Session, email: str) -> User:
    user = db.scalars(select(User).where(func.lower(User.email) == email.lower())).first()
    if user is None:
        raise RecordNotFoundError()

    db.expunge(user)
    return user


def update_user(db: Session, user: User) -> User:
    """Conditional update on (id, version); see movie_service.update_movie."""
    stmt = (
        update(User)
        .where(User.id == user.id, User.version == user.version)
        .values(
            name=user.name,
            email=user.email,
            password_hash=user.password_hash,
            activated=user.activated,
            version=User.version + 1,
        )
        .returning(User.version)
        .execution_options(synchronize_session=False)
    )

    try:
        new_version = db.execute(stmt).scalar_one_or_none()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise DuplicateEmailError() from exc
        raise

    if new_version is None:
        db.rollback()
        raise EditConflictError()

    db.commit()
    user.version = new_version
    return user


def get_user_for_token(db: Session, scope: str, token_plaintext: str) -> User:
    """
    Resolve the owner of an unexpired token with the given scope.

    Unknown, expired and wrong-scope tokens all raise the same
    RecordNotFoundError so callers cannot tell them apart.
    """
    stmt = (
        select(User)
        .join(Token, Token.user_id == User.id)
        .where(
            Token.hash == hash_token(token_plaintext),
            Token.scope == scope,
            Token.expiry > datetime.now(timezone.utc),
        )
    )
    user = db.scalars(stmt).first()
    if user is None:
        raise RecordNotFoundError()

    db.expunge(user)
    return user
