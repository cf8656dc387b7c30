"""
Request-scoped authentication state.

The authentication middleware stores exactly one of these on
``request.state.auth``; handlers receive it through deps.auth.
"""
from dataclasses import dataclass
from typing import Union

from filmvault.db.models import User


class MissingAuthStateError(RuntimeError):
    """Raised when a handler runs without the authentication middleware in front of it."""


@dataclass(frozen=True)
class Anonymous:
    """No credentials were presented."""


@dataclass(frozen=True)
class Authenticated:
    user: User


AuthState = Union[Anonymous, Authenticated]

ANONYMOUS = Anonymous()
