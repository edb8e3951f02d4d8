"""Initial schema - permission catalog, custom roles, assignments, overrides, cache.

Revision ID: 001
Revises:
Create Date: 2026-09-14

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("organization_id", sa.String(255), nullable=True),
        sa.Column("property_id", sa.String(255), nullable=True),
        sa.Column("department_id", sa.String(255), nullable=True),
        sa.Column("legacy_role", sa.String(50), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="INTERNAL"),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
    )
    op.create_index("ix_app_user_organization", "app_user", ["organization_id"])

    op.create_table(
        "permission",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("resource", sa.String(100), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("scope", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index(
        "ix_permission_key", "permission", ["resource", "action", "scope"], unique=True
    )

    op.create_table(
        "permission_condition",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("permission_id", sa.UUID(), sa.ForeignKey("permission.id", ondelete="CASCADE"), nullable=False),
        sa.Column("condition_type", sa.String(50), nullable=False),
        sa.Column("operator", sa.String(20), nullable=False, server_default="in"),
        sa.Column("value", JSONB(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_permission_condition_permission", "permission_condition", ["permission_id"])

    op.create_table(
        "custom_role",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("organization_id", sa.String(255), nullable=True),
        sa.Column("property_id", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("is_system_role", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("metadata", JSONB(), nullable=True),
        sa.Column("cloned_from_id", sa.UUID(), sa.ForeignKey("custom_role.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_custom_role_tenant", "custom_role", ["organization_id", "property_id"])
    op.create_index("ix_custom_role_cloned_from", "custom_role", ["cloned_from_id"])
    # Names are unique per (organization, property) among live roles
    op.execute("""
        CREATE UNIQUE INDEX ux_custom_role_scope_name ON custom_role (
            lower(name), coalesce(organization_id, ''), coalesce(property_id, '')
        ) WHERE deleted_at IS NULL
    """)

    op.create_table(
        "role_permission",
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("permission_id", sa.UUID(), sa.ForeignKey("permission.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("granted", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("conditions", JSONB(), nullable=True),
    )
    op.create_index("ix_role_permission_permission", "role_permission", ["permission_id"])

    op.create_table(
        "user_custom_role",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_by", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("conditions", JSONB(), nullable=True),
        sa.Column("metadata", JSONB(), nullable=True),
        sa.Column("removed_by", sa.String(255), nullable=True),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_user_custom_role_user_role", "user_custom_role", ["user_id", "role_id"], unique=True
    )
    op.create_index("ix_user_custom_role_role", "user_custom_role", ["role_id"])
    op.create_index("ix_user_custom_role_expires", "user_custom_role", ["expires_at"])

    op.create_table(
        "user_permission",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("permission_id", sa.UUID(), sa.ForeignKey("permission.id", ondelete="CASCADE"), nullable=False),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("conditions", JSONB(), nullable=True),
        sa.Column("granted_by", sa.String(255), nullable=True),
        sa.Column("metadata", JSONB(), nullable=True),
    )
    op.create_index(
        "ix_user_permission_user_permission",
        "user_permission",
        ["user_id", "permission_id"],
        unique=True,
    )

    op.create_table(
        "permission_cache",
        sa.Column("cache_key", sa.Text(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("allowed", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("conditions", JSONB(), nullable=True),
    )
    op.create_index("ix_permission_cache_user", "permission_cache", ["user_id"])
    op.create_index("ix_permission_cache_expires", "permission_cache", ["expires_at"])


def downgrade() -> None:
    op.drop_table("permission_cache")
    op.drop_table("user_permission")
    op.drop_table("user_custom_role")
    op.drop_table("role_permission")
    op.execute("DROP INDEX IF EXISTS ux_custom_role_scope_name")
    op.drop_table("custom_role")
    op.drop_table("permission_condition")
    op.drop_table("permission")
    op.drop_table("app_user")
