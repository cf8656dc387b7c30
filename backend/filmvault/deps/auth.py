"""
Authorization gates, shared across all protected endpoints.

The authentication middleware has already resolved the bearer token into
request.state.auth; these dependencies only decide whether that state is
good enough for the route.

Usage in any route:
    from filmvault.deps.auth import require_permission

    @router.get("/movies")
    def list_movies(user: User = Depends(require_permission(MOVIES_READ))):
        ...
"""
from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from filmvault.api.errors import authentication_required, inactive_account, not_permitted
from filmvault.core.context import Anonymous, AuthState, MissingAuthStateError
from filmvault.db.models import User
from filmvault.db.session import get_db
from filmvault.services.permission_service import get_all_for_user


def get_auth_state(request: Request) -> AuthState:
    """
    Return the auth state attached by the authentication middleware.

    A route reached without it means the middleware is not installed, which
    is a wiring bug rather than a client error.
    """
    state = getattr(request.state, "auth", None)
    if state is None:
        raise MissingAuthStateError("missing auth state in request context")
    return state


def require_authenticated_user(auth: AuthState = Depends(get_auth_state)) -> User:
    if isinstance(auth, Anonymous):
        raise authentication_required()
    return auth.user


def require_activated_user(user: User = Depends(require_authenticated_user)) -> User:
    if not user.activated:
        raise inactive_account()
    return user


def require_permission(code: str) -> Callable[..., User]:
    """Build a dependency that admits only activated users holding *code*."""

    def dependency(
        user: User = Depends(require_activated_user),
        db: Session = Depends(get_db),
    ) -> User:
        permissions = get_all_for_user(db, user.id)
        if not permissions.include(code):
            raise not_permitted()
        return user

    return dependency
