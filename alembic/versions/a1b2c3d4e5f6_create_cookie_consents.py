"""create roles, users and cookie_consents tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("permissions", sa.JSON(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("username", sa.String(100), nullable=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
    )
    op.create_table(
        "cookie_consents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("session_id", sa.String(64), nullable=True, index=True),
        sa.Column("strictly_necessary", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("functional", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("analytics", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("marketing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("consent_version", sa.String(20), nullable=False),
        sa.Column("consent_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_cookie_consent_created", "cookie_consents", ["created_at"])
    op.create_index(
        "idx_cookie_consent_user_created",
        "cookie_consents",
        ["user_id", "created_at"],
    )
    op.create_index("uq_cookie_consent_user", "cookie_consents", ["user_id"], unique=True)
    op.create_index(
        "uq_cookie_consent_session",
        "cookie_consents",
        ["session_id"],
        unique=True,
        sqlite_where=sa.text("user_id IS NULL"),
        postgresql_where=sa.text("user_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_cookie_consent_session", table_name="cookie_consents")
    op.drop_index("uq_cookie_consent_user", table_name="cookie_consents")
    op.drop_index("idx_cookie_consent_user_created", table_name="cookie_consents")
    op.drop_index("idx_cookie_consent_created", table_name="cookie_consents")
    op.drop_table("cookie_consents")
    op.drop_table("users")
    op.drop_table("roles")
