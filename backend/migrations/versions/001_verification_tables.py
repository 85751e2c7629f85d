"""Create verification flow tables: verifications and users.

Revision ID: 001_verification_tables
Revises:
Create Date: 2026-10-17

verifications - Code Store (one row per login attempt)
users - Profile Store (id mirrors the Identity Directory id)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_verification_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Code Store. Token is stored as its SHA-256 hex digest only.
    op.create_table(
        "verifications",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("token_hash", name="uq_verifications_token_hash"),
    )
    op.create_index(
        "idx_verifications_code_used_created",
        "verifications",
        ["code", "used", "created_at"],
    )
    op.create_index("idx_verifications_email", "verifications", ["email"])

    # Profile Store. Display fields are owned by the rest of the application.
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "role", sa.String(20), nullable=False, server_default="student"
        ),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("profile_path", sa.Text(), nullable=True),
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
        sa.CheckConstraint(
            "role IN ('student', 'admin')", name="ck_users_role_valid"
        ),
    )
    op.create_index("idx_users_email", "users", ["email"], unique=True)
    op.create_index(
        "idx_users_email_lower", "users", [sa.text("lower(email)")]
    )


def downgrade() -> None:
    op.drop_index("idx_users_email_lower", table_name="users")
    op.drop_index("idx_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("idx_verifications_email", table_name="verifications")
    op.drop_index("idx_verifications_code_used_created", table_name="verifications")
    op.drop_table("verifications")
