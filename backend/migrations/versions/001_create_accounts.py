"""Create accounts table with verification and reset token slots.

Revision ID: 001_create_accounts
Revises:
Create Date: 2026-10-19

- pgcrypto provides gen_random_uuid() for the primary key.
- Token columns are indexed: consumption looks accounts up by token.
- token_invalidated_before revokes session JWTs after a password reset.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_create_accounts"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "accounts",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("contact_no", sa.String(30), nullable=True),
        sa.Column("sex", sa.String(20), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("image_id", sa.String(255), nullable=True),
        sa.Column(
            "is_verified",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("verification_token", sa.String(64), nullable=True),
        sa.Column(
            "verification_token_expires", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("reset_password_token", sa.String(64), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "token_invalidated_before", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
    )
    op.create_index(
        "ix_accounts_verification_token", "accounts", ["verification_token"]
    )
    op.create_index(
        "ix_accounts_reset_password_token", "accounts", ["reset_password_token"]
    )


def downgrade() -> None:
    op.drop_index("ix_accounts_reset_password_token", table_name="accounts")
    op.drop_index("ix_accounts_verification_token", table_name="accounts")
    op.drop_table("accounts")
    # pgcrypto is left installed; other schemas may use it
