"""Permission engine schema: tenants, employees, roles, grants and audit log

Revision ID: 20261001_permission_engine
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_permission_engine"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("soft_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "service_locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_headquarters", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("soft_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_service_locations_business_id", "service_locations", ["business_id"])
    op.create_index(
        "ix_service_locations_business_active",
        "service_locations",
        ["business_id", "is_active", "soft_delete"],
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("soft_delete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_business_id", "users", ["business_id"])
    op.create_index("ix_users_business_active", "users", ["business_id", "is_active", "soft_delete"])

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("text_color", sa.String(length=16), nullable=False, server_default="#000000"),
        sa.Column("background_color", sa.String(length=16), nullable=False, server_default="#f3f4f6"),
        sa.Column("border_color", sa.String(length=16), nullable=False, server_default="#d1d5db"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="99"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "role_parents",
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("parent_role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        sa.CheckConstraint("role_id <> parent_role_id", name="ck_role_parents_not_self"),
    )

    op.create_table(
        "employee_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("employee_id", "role_id", name="uq_employee_roles"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_employee_roles_employee_id", "employee_roles", ["employee_id"])
    op.create_index("ix_employee_roles_role_id", "employee_roles", ["role_id"])

    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("permission_key", sa.String(length=255), nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_permissions_permission_key", "permissions", ["permission_key"], unique=True)
    op.create_index("ix_permissions_resource_type", "permissions", ["resource_type"])

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id"), nullable=False),
        sa.Column("is_granted", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_role_permissions_role_id", "role_permissions", ["role_id"])
    op.create_index("ix_role_permissions_permission_id", "role_permissions", ["permission_id"])

    op.create_table(
        "permission_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("permission_key", sa.String(length=255), nullable=False),
        sa.Column("result", sa.String(length=20), nullable=False),
        sa.Column("role_used_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=True),
        sa.Column("resource_type", sa.String(length=100), nullable=True),
        sa.Column("resource_id", sa.String(length=64), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("action_details", sa.JSON(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_permission_audit_log_occurred_at", "permission_audit_log", ["occurred_at"])
    op.create_index("ix_permission_audit_log_employee_id", "permission_audit_log", ["employee_id"])
    op.create_index("ix_permission_audit_log_event_type", "permission_audit_log", ["event_type"])
    op.create_index("ix_permission_audit_log_result", "permission_audit_log", ["result"])
    op.create_index(
        "ix_permission_audit_log_employee_occurred",
        "permission_audit_log",
        ["employee_id", "occurred_at"],
    )
    op.create_index(
        "ix_permission_audit_log_event_occurred",
        "permission_audit_log",
        ["event_type", "occurred_at"],
    )


def downgrade():
    op.drop_table("permission_audit_log")
    op.drop_table("role_permissions")
    op.drop_table("permissions")
    op.drop_table("employee_roles")
    op.drop_table("role_parents")
    op.drop_table("roles")
    op.drop_table("employees")
    op.drop_table("users")
    op.drop_table("service_locations")
    op.drop_table("businesses")
