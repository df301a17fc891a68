"""Users table (Firebase Auth sync)

Revision ID: 001_users
Revises:
Create Date: 2026-10-19

Tables:
- users: one row per Firebase uid (unique), unique email, role, activation,
  optional LINE link, last login timestamp
"""
from alembic import op
import sqlalchemy as sa

revision = "001_users"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("firebase_uid", sa.String(128), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255)),
        sa.Column("avatar_url", sa.Text()),
        sa.Column("role", sa.String(20), nullable=False, server_default="STUDENT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("line_user_id", sa.String(64), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("role IN ('STUDENT', 'INSTRUCTOR', 'ADMIN')", name="ck_users_role"),
        sa.UniqueConstraint("line_user_id", name="uq_users_line_user_id"),
    )
    # Upsert target: ON CONFLICT (firebase_uid)
    op.create_index("ix_users_firebase_uid", "users", ["firebase_uid"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_firebase_uid", table_name="users")
    op.drop_table("users")
