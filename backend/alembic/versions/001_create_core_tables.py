"""Create core task-management tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates materials, tasks (+ routine_task_materials), task_activities
       (+ task_activity_materials), task_comments, attachments, notifications.
How:   Portable column types (sa.Uuid, timezone-aware DateTime) so the same
       revision runs on PostgreSQL and on SQLite. IDs are generated by the
       application (uuid4), not by a server default.

Invariants enforced by the database:
    materials.stock_on_hand >= 0
    task_comments.depth BETWEEN 0 AND 5
    *_materials.quantity > 0, one row per (owner, material)

Rollback: downgrade() drops every table (destructive).
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Tables carrying the soft-delete, tenant and timestamp mixin columns
SCOPED_TABLES = (
    "materials",
    "tasks",
    "task_activities",
    "task_comments",
    "attachments",
    "notifications",
)


def _common_columns() -> List[sa.Column]:
    return [
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.Uuid(), nullable=True),
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
    ]


def _usage_table(name: str, owner_column: str, owner_table: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(owner_column, sa.Uuid(), sa.ForeignKey(f"{owner_table}.id"), nullable=False),
        sa.Column("material_id", sa.Uuid(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name=f"ck_{name}_quantity_positive"),
        sa.UniqueConstraint(
            owner_column,
            "material_id",
            name=f"uq_{name}_{owner_column.replace('_id', '')}_material",
        ),
    )
    op.create_index(f"ix_{name}_{owner_column}", name, [owner_column])
    op.create_index(f"ix_{name}_material_id", name, ["material_id"])


def upgrade() -> None:
    op.create_table(
        "materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("sku", sa.String(30), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("stock_on_hand", sa.Integer(), nullable=False),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False),
        sa.Column("reorder_quantity", sa.Integer(), nullable=False),
        sa.Column("last_restocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("stock_on_hand >= 0", name="ck_materials_stock_non_negative"),
        sa.CheckConstraint("low_stock_threshold >= 0", name="ck_materials_threshold_non_negative"),
        sa.UniqueConstraint("organization_id", "department_id", "sku", name="uq_materials_scope_sku"),
        sa.UniqueConstraint("organization_id", "department_id", "name", name="uq_materials_scope_name"),
    )
    op.create_index("ix_materials_status", "materials", ["status"])
    op.create_index(
        "idx_materials_scope_status", "materials", ["organization_id", "department_id", "status"]
    )

    # Single-table inheritance: `type` discriminates Project/Assigned/Routine,
    # `date` is only set for RoutineTask
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("priority", sa.String(50), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_type", "tasks", ["type"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("idx_tasks_scope_status", "tasks", ["organization_id", "department_id", "status"])
    op.create_index("idx_tasks_scope_type", "tasks", ["organization_id", "department_id", "type"])

    _usage_table("routine_task_materials", "task_id", "tasks")

    op.create_table(
        "task_activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=False),
        sa.Column("parent_model", sa.String(50), nullable=False),
        sa.Column("activity", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("parent_model = 'Task'", name="ck_task_activities_parent_is_task"),
    )
    op.create_index("ix_task_activities_parent_id", "task_activities", ["parent_id"])
    op.create_index("idx_task_activities_parent", "task_activities", ["parent_id", "parent_model"])

    _usage_table("task_activity_materials", "activity_id", "task_activities")

    op.create_table(
        "task_comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=False),
        sa.Column("parent_model", sa.String(50), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("depth", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("depth >= 0 AND depth <= 5", name="ck_task_comments_depth_range"),
        sa.CheckConstraint(
            "parent_model IN ('Task', 'TaskActivity', 'TaskComment')",
            name="ck_task_comments_parent_model",
        ),
    )
    op.create_index("ix_task_comments_parent_id", "task_comments", ["parent_id"])
    op.create_index("ix_task_comments_parent_model", "task_comments", ["parent_model"])
    op.create_index("idx_task_comments_parent", "task_comments", ["parent_id", "parent_model"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("file_url", sa.String(1024), nullable=False),
        sa.Column("file_type", sa.String(50), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=False),
        sa.Column("parent_model", sa.String(50), nullable=False),
        sa.Column("uploaded_by", sa.Uuid(), nullable=False),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("file_size >= 0", name="ck_attachments_file_size_non_negative"),
        sa.CheckConstraint(
            "parent_model IN ('Task', 'TaskActivity', 'TaskComment')",
            name="ck_attachments_parent_model",
        ),
    )
    op.create_index("ix_attachments_parent_id", "attachments", ["parent_id"])
    op.create_index("ix_attachments_parent_model", "attachments", ["parent_model"])
    op.create_index("idx_attachments_parent", "attachments", ["parent_id", "parent_model"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("entity_model", sa.String(50), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_common_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_entity_id", "notifications", ["entity_id"])
    op.create_index("ix_notifications_entity_model", "notifications", ["entity_model"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("idx_notifications_entity", "notifications", ["entity_id", "entity_model"])
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "is_read"])

    # Mixin indexes: every cascade and scope filter hits these
    for table in SCOPED_TABLES:
        for column in ("organization_id", "department_id", "is_deleted"):
            op.create_index(f"ix_{table}_{column}", table, [column])


def downgrade() -> None:
    # Dependents first; dropping a table drops its indexes
    for table in (
        "notifications",
        "attachments",
        "task_comments",
        "task_activity_materials",
        "task_activities",
        "routine_task_materials",
        "tasks",
        "materials",
    ):
        op.drop_table(table)
