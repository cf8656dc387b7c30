"""
Store-level outcomes shared by every service module.

Route handlers translate these into HTTP statuses; anything not listed here
is treated as an internal fault.
"""
from sqlalchemy.exc import IntegrityError

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class RecordNotFoundError(Exception):
    """Raised when a lookup, update target or delete target does not exist."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class EditConflictError(Exception):
    """Raised when a conditional update matched no row at the expected version."""

    def __init__(self, message: str = "edit conflict") -> None:
        super().__init__(message)


class DuplicateEmailError(Exception):
    """Raised when a user write collides with an existing email address."""

    def __init__(self, message: str = "duplicate email") -> None:
        super().__init__(message)


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Classify *exc* by its structured error code rather than its message text.

    psycopg2 exposes the SQLSTATE as ``pgcode``, psycopg 3 as ``sqlstate``;
    sqlite3 (Python 3.11+) exposes ``sqlite_errorname``.
    """
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return getattr(orig, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_UNIQUE"
