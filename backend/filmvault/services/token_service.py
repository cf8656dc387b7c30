"""
Token store — persists hashed tokens and revokes them by scope.
"""
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from filmvault.core.security import Token, generate_token
from filmvault.db.models import Token as TokenRow


def new_token(db: Session, user_id: int, ttl: timedelta, scope: str) -> Token:
    """Generate a token for *user_id* and store its hash. Returns the plaintext-bearing token."""
    token = generate_token(user_id, ttl, scope)
    insert_token(db, token)
    return token


def insert_token(db: Session, token: Token) -> None:
    db.add(
        TokenRow(
            hash=token.hash,
            user_id=token.user_id,
            expiry=token.expiry,
            scope=token.scope,
        )
    )
    db.commit()


def delete_all_for_user(db: Session, scope: str, user_id: int) -> None:
    db.execute(delete(TokenRow).where(TokenRow.scope == scope, TokenRow.user_id == user_id))
    db.commit()
