"""Initial schema — movies, users, tokens, permissions

Revision ID: 0001
Revises: —
Create Date: 2026-10-18 00:00:00
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, BYTEA, CITEXT
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────────
    op.execute("CREATE EXTENSION IF NOT EXISTS citext")

    # ── movies ────────────────────────────────────────────────────────────────
    op.create_table(
        "movies",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("runtime", sa.Integer, nullable=False),
        sa.Column("genres", ARRAY(sa.Text), nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.CheckConstraint("runtime >= 0", name="movies_runtime_check"),
        sa.CheckConstraint(
            "year >= 1888 AND year <= date_part('year', now())",
            name="movies_year_check",
        ),
        sa.CheckConstraint(
            "array_length(genres, 1) BETWEEN 1 AND 5",
            name="genres_length_check",
        ),
    )
    # Backs the title full-text match and the genres containment filter
    op.execute("CREATE INDEX movies_title_idx ON movies USING GIN (to_tsvector('simple', title))")
    op.execute("CREATE INDEX movies_genres_idx ON movies USING GIN (genres)")

    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True),
                  nullable=False, server_default=sa.text("now()")),
        sa.Column("name", sa.Text, nullable=False),
        # citext: 'Alice@x.io' and 'alice@x.io' collide on the unique index; the
        # address itself is stored as typed
        sa.Column("email", CITEXT, nullable=False, unique=True),
        sa.Column("password_hash", sa.Text, nullable=False),
        sa.Column("activated", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("users_email_lower_key", "users", [sa.text("lower(email)")], unique=True)

    # ── tokens ────────────────────────────────────────────────────────────────
    op.create_table(
        "tokens",
        sa.Column("hash", BYTEA, primary_key=True),
        sa.Column("user_id", sa.BigInteger,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expiry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scope", sa.Text, nullable=False),
    )
    op.create_index("ix_tokens_user_id", "tokens", ["user_id"])

    # ── permissions ───────────────────────────────────────────────────────────
    permissions = op.create_table(
        "permissions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("code", sa.Text, nullable=False, unique=True),
    )
    op.bulk_insert(permissions, [{"code": "movies:read"}, {"code": "movies:write"}])

    op.create_table(
        "users_permissions",
        sa.Column("user_id", sa.BigInteger,
                  sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("permission_id", sa.BigInteger,
                  sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("users_permissions")
    op.drop_table("permissions")
    op.drop_index("ix_tokens_user_id", table_name="tokens")
    op.drop_table("tokens")
    op.drop_index("users_email_lower_key", table_name="users")
    op.drop_table("users")
    op.execute("DROP INDEX IF EXISTS movies_genres_idx")
    op.execute("DROP INDEX IF EXISTS movies_title_idx")
    op.drop_table("movies")
    op.execute("DROP EXTENSION IF EXISTS citext")
