"""init schema

Revision ID: 0001_init_schema
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


def _in(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def _audit() -> list[sa.Column]:
    return [
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _membership(name: str, parent: str, parent_col: str) -> None:
    op.create_table(
        name,
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(parent_col, postgresql.UUID(as_uuid=True), sa.ForeignKey(f"{parent}.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("user_id", parent_col),
        sa.CheckConstraint(_in("role", ("OWNER", "ADMIN", "MANAGER", "MEMBER", "VIEWER")), name=f"ck_{name}_role"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("username", sa.Text(), nullable=True, unique=True),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("mobile_number", sa.Text(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=False, server_default="UTC"),
        sa.Column("language", sa.Text(), nullable=False, server_default="en"),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        sa.Column("status", sa.Text(), nullable=False, server_default="ACTIVE"),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("password", sa.Text(), nullable=True),
        sa.Column("preferences", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(_in("role", ("SUPER_ADMIN", "ADMIN", "MANAGER", "MEMBER", "VIEWER")), name="ck_users_role"),
        sa.CheckConstraint(_in("status", ("ACTIVE", "INACTIVE", "SUSPENDED", "PENDING")), name="ck_users_status"),
    )

    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("settings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        *_audit(),
    )
    _membership("organization_members", "organizations", "organization_id")

    op.create_table(
        "workspaces",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("settings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_audit(),
        sa.UniqueConstraint("organization_id", "slug"),
    )
    _membership("workspace_members", "workspaces", "workspace_id")

    op.create_table(
        "workflows",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_audit(),
    )

    op.create_table(
        "task_statuses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("color", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("workflow_id", "name"),
        sa.CheckConstraint(_in("category", ("TODO", "IN_PROGRESS", "DONE")), name="ck_task_statuses_category"),
    )

    op.create_table(
        "status_transitions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("task_statuses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("to_status_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("task_statuses.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("workflow_id", "from_status_id", "to_status_id"),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="PLANNING"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="MEDIUM"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("workflows.id"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("workspace_id", "slug"),
        sa.CheckConstraint(_in("status", ("PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED")), name="ck_projects_status"),
        sa.CheckConstraint(_in("priority", ("LOW", "MEDIUM", "HIGH", "URGENT")), name="ck_projects_priority"),
    )
    _membership("project_members", "projects", "project_id")

    op.create_table(
        "sprints",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("goal", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="PLANNING"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.CheckConstraint(_in("status", ("PLANNING", "ACTIVE", "COMPLETED", "CANCELLED")), name="ck_sprints_status"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False, server_default="TASK"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="MEDIUM"),
        sa.Column("task_number", sa.Integer(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("story_points", sa.Integer(), nullable=True),
        sa.Column("original_estimate", sa.Integer(), nullable=True),
        sa.Column("remaining_estimate", sa.Integer(), nullable=True),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reporter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("task_statuses.id"), nullable=False),
        sa.Column("sprint_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True),
        sa.Column("parent_task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        *_audit(),
        sa.UniqueConstraint("project_id", "task_number"),
        sa.CheckConstraint(_in("type", ("TASK", "BUG", "EPIC", "STORY", "SUBTASK")), name="ck_tasks_type"),
        sa.CheckConstraint(_in("priority", ("LOWEST", "LOW", "MEDIUM", "HIGH", "HIGHEST")), name="ck_tasks_priority"),
    )

    op.create_table(
        "task_assignees",
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("task_id", "user_id"),
    )

    op.create_table(
        "task_dependencies",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.Text(), nullable=False, server_default="BLOCKS"),
        sa.Column("dependent_task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("blocking_task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("dependent_task_id", "blocking_task_id"),
        sa.CheckConstraint("dependent_task_id <> blocking_task_id", name="ck_task_dependencies_not_self"),
        sa.CheckConstraint(
            _in("type", ("BLOCKS", "FINISH_START", "START_START", "FINISH_FINISH", "START_FINISH")),
            name="ck_task_dependencies_type",
        ),
    )

    op.create_table(
        "labels",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("color", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("project_id", "name"),
    )

    op.create_table(
        "task_labels",
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("labels.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("task_id", "label_id"),
    )

    op.create_table(
        "task_watchers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.UniqueConstraint("task_id", "user_id"),
    )

    op.create_table(
        "task_comments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "parent_comment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("task_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        *_audit(),
    )

    op.create_table(
        "time_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("time_spent", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
        sa.CheckConstraint("time_spent > 0", name="ck_time_entries_positive"),
    )

    op.create_table(
        "project_inboxes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email_address", sa.Text(), nullable=True, unique=True),
        sa.Column("auto_reply_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_reply_template", sa.Text(), nullable=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        *_audit(),
    )

    op.create_table(
        "inbox_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("stop_on_match", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("conditions", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("actions", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("inbox_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("project_inboxes.id", ondelete="CASCADE"), nullable=False),
        *_audit(),
    )

    op.create_index("ix_workspaces_org", "workspaces", ["organization_id"])
    op.create_index("ix_projects_workspace", "projects", ["workspace_id"])
    op.create_index("ix_sprints_project_status", "sprints", ["project_id", "status"])
    op.create_index("ix_tasks_project_status", "tasks", ["project_id", "status_id"])
    op.create_index("ix_tasks_sprint", "tasks", ["sprint_id"])
    op.create_index("ix_task_comments_task", "task_comments", ["task_id"])
    op.create_index("ix_time_entries_task", "time_entries", ["task_id"])
    op.create_index("ix_inbox_rules_inbox_priority", "inbox_rules", ["inbox_id", "priority"])


def downgrade() -> None:
    op.drop_index("ix_inbox_rules_inbox_priority", table_name="inbox_rules")
    op.drop_index("ix_time_entries_task", table_name="time_entries")
    op.drop_index("ix_task_comments_task", table_name="task_comments")
    op.drop_index("ix_tasks_sprint", table_name="tasks")
    op.drop_index("ix_tasks_project_status", table_name="tasks")
    op.drop_index("ix_sprints_project_status", table_name="sprints")
    op.drop_index("ix_projects_workspace", table_name="projects")
    op.drop_index("ix_workspaces_org", table_name="workspaces")
    for table in [
        "inbox_rules",
        "project_inboxes",
        "time_entries",
        "task_comments",
        "task_watchers",
        "task_labels",
        "labels",
        "task_dependencies",
        "task_assignees",
        "tasks",
        "sprints",
        "project_members",
        "projects",
        "status_transitions",
        "task_statuses",
        "workflows",
        "workspace_members",
        "workspaces",
        "organization_members",
        "organizations",
        "users",
    ]:
        op.drop_table(table)
