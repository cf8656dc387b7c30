"""
Password hashing and opaque token utilities.
Never import DB models here — keep this layer pure.
"""
import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from filmvault.core.validator import Validator

# bcrypt at cost 12; deprecated schemes are re-hashed on verify
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

SCOPE_ACTIVATION = "activation"
SCOPE_AUTHENTICATION = "authentication"

TOKEN_BYTES = 16
TOKEN_PLAINTEXT_LENGTH = 26


class MissingPasswordHashError(RuntimeError):
    """Raised when a user reaches validation without a password hash."""


# ── Password helpers ──────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of *plain*."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if *plain* matches the stored *hashed* value."""
    return pwd_context.verify(plain, hashed)


class Password:
    """
    A password as the API sees it during a single request.

    The plaintext is only present when the password was set in this request
    (registration); a password loaded from the store carries the hash alone.
    """

    def __init__(self, hash: str | None = None) -> None:
        self.plaintext: str | None = None
        self.hash = hash

    def set(self, plaintext: str) -> None:
        self.plaintext = plaintext
        self.hash = hash_password(plaintext)

    def matches(self, plaintext: str) -> bool:
        if self.hash is None:
            return False
        return verify_password(plaintext, self.hash)


def validate_password_plaintext(v: Validator, password: str) -> None:
    v.check(password != "", "password", "must be provided")
    v.check(len(password.encode()) >= 8, "password", "must be at least 8 bytes long")
    v.check(len(password.encode()) <= 72, "password", "must not be more than 72 bytes long")


# ── Token helpers ─────────────────────────────────────────────────────────────

@dataclass
class Token:
    """
    An issued bearer token.

    Only *hash* is ever persisted; *plaintext* is handed to the client once.
    """

    plaintext: str
    hash: bytes
    user_id: int
    expiry: datetime
    scope: str


def hash_token(plaintext: str) -> bytes:
    """SHA-256 digest of a token plaintext (the stored form)."""
    return hashlib.sha256(plaintext.encode()).digest()


def generate_token(user_id: int, ttl: timedelta, scope: str) -> Token:
    """
    Create a fresh token for *user_id* valid for *ttl*.

    16 random bytes are base-32 encoded without padding, giving a 26 character
    plaintext. Errors from the OS random source propagate.
    """
    random_bytes = secrets.token_bytes(TOKEN_BYTES)
    plaintext = base64.b32encode(random_bytes).decode("ascii").rstrip("=")
    return Token(
        plaintext=plaintext,
        hash=hash_token(plaintext),
        user_id=user_id,
        expiry=datetime.now(timezone.utc) + ttl,
        scope=scope,
    )


def validate_token_plaintext(v: Validator, plaintext: str) -> None:
    v.check(plaintext != "", "token", "must be provided")
    v.check(len(plaintext) == TOKEN_PLAINTEXT_LENGTH, "token", "must be 26 bytes long")
