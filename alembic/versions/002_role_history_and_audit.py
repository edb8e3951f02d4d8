"""Add append-only role history ledger and administrative audit log.

Revision ID: 002
Revises: 001
Create Date: 2026-09-15

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "role_history",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("role_id", sa.UUID(), nullable=False),
        sa.Column("admin_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("user_role_id", sa.UUID(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("batch_id", sa.String(255), nullable=True),
        sa.Column("parent_entry_id", sa.UUID(), sa.ForeignKey("role_history.id"), nullable=True),
        sa.Column("operation_type", sa.String(50), nullable=True),
        sa.Column("user_snapshot", JSONB(), nullable=True),
        sa.Column("role_snapshot", JSONB(), nullable=True),
        sa.Column("admin_snapshot", JSONB(), nullable=True),
        sa.Column("changes", JSONB(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("request_id", sa.String(255), nullable=True),
        sa.Column("organization_id", sa.String(255), nullable=True),
        sa.Column("property_id", sa.String(255), nullable=True),
        sa.Column("department_id", sa.String(255), nullable=True),
    )
    op.create_index("ix_role_history_timestamp", "role_history", ["timestamp"])
    op.create_index("ix_role_history_user", "role_history", ["user_id", "timestamp"])
    op.create_index("ix_role_history_role", "role_history", ["role_id", "timestamp"])
    op.create_index("ix_role_history_admin", "role_history", ["admin_id", "timestamp"])
    op.create_index("ix_role_history_organization", "role_history", ["organization_id", "timestamp"])
    op.create_index("ix_role_history_batch", "role_history", ["batch_id"])
    op.create_index("ix_role_history_action", "role_history", ["action"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("actor_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("old_data", JSONB(), nullable=True),
        sa.Column("new_data", JSONB(), nullable=True),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity", "entity_id"])
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("role_history")
