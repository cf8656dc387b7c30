"""
Field-level validation accumulator.

Collects the first failure message per field so a handler can run every check
and report the whole map in one 422 response. Keep this layer pure: no DB,
no HTTP.
"""
import re
from collections.abc import Iterable

EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class Validator:
    """Mapping of field key → first-seen error message."""

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def valid(self) -> bool:
        """Return True if no failures have been recorded."""
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        """Record *message* for *key* unless the key already has one."""
        self.errors.setdefault(key, message)

    def check(self, ok: bool, key: str, message: str) -> None:
        """Record a failure for *key* iff *ok* is false."""
        if not ok:
            self.add_error(key, message)


# ── Helpers ───────────────────────────────────────────────────────────────────

def permitted_value(value: str, *permitted: str) -> bool:
    return value in permitted


def matches(value: str, rx: re.Pattern) -> bool:
    return rx.match(value) is not None


def unique(values: Iterable[str]) -> bool:
    """Return True if every value in *values* is distinct."""
    seen = list(values)
    return len(seen) == len(set(seen))
