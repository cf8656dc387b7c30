"""
Permission store — many-to-many lookup between users and permission codes.
"""
from sqlalchemy import insert, literal, select
from sqlalchemy.orm import Session

from filmvault.db.models import Permission, users_permissions

MOVIES_READ = "movies:read"
MOVIES_WRITE = "movies:write"


class Permissions(list):
    """The permission codes granted to one user."""

    def include(self, code: str) -> bool:
        return code in self


def get_all_for_user(db: Session, user_id: int) -> Permissions:
    stmt = (
        select(Permission.code)
        .join(users_permissions, users_permissions.c.permission_id == Permission.id)
        .where(users_permissions.c.user_id == user_id)
    )
    return Permissions(db.scalars(stmt).all())


def add_for_user(db: Session, user_id: int, *codes: str) -> None:
    """Grant every known permission in *codes* to *user_id*."""
    stmt = insert(users_permissions).from_select(
        ["user_id", "permission_id"],
        select(literal(user_id), Permission.id).where(Permission.code.in_(codes)),
    )
    db.execute(stmt)
    db.commit()
