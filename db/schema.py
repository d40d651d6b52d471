from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


USER_ROLES = ("SUPER_ADMIN", "ADMIN", "MANAGER", "MEMBER", "VIEWER")
USER_STATUSES = ("ACTIVE", "INACTIVE", "SUSPENDED", "PENDING")
MEMBER_ROLES = ("OWNER", "ADMIN", "MANAGER", "MEMBER", "VIEWER")
PROJECT_STATUSES = ("PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED")
PROJECT_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
TASK_TYPES = ("TASK", "BUG", "EPIC", "STORY", "SUBTASK")
TASK_PRIORITIES = ("LOWEST", "LOW", "MEDIUM", "HIGH", "HIGHEST")
STATUS_CATEGORIES = ("TODO", "IN_PROGRESS", "DONE")
SPRINT_STATUSES = ("PLANNING", "ACTIVE", "COMPLETED", "CANCELLED")
DEPENDENCY_TYPES = ("BLOCKS", "FINISH_START", "START_START", "FINISH_FINISH", "START_FINISH")


METADATA = sa.MetaData()


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), primary_key=True)


def _audit() -> list[sa.Column]:
    return [
        sa.Column("created_by_id", UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


users = sa.Table(
    "users",
    METADATA,
    _id(),
    sa.Column("email", sa.Text(), nullable=False, unique=True),
    sa.Column("username", sa.Text(), nullable=True, unique=True),
    sa.Column("first_name", sa.Text(), nullable=False),
    sa.Column("last_name", sa.Text(), nullable=False),
    sa.Column("avatar", sa.Text(), nullable=True),
    sa.Column("bio", sa.Text(), nullable=True),
    sa.Column("mobile_number", sa.Text(), nullable=True),
    sa.Column("timezone", sa.Text(), nullable=False),
    sa.Column("language", sa.Text(), nullable=False),
    sa.Column("role", sa.Text(), nullable=False),
    sa.Column("status", sa.Text(), nullable=False),
    sa.Column("email_verified", sa.Boolean(), nullable=False),
    sa.Column("password", sa.Text(), nullable=True),
    sa.Column("preferences", JSONB, nullable=True),
    sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)

organizations = sa.Table(
    "organizations",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("slug", sa.Text(), nullable=False, unique=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("avatar", sa.Text(), nullable=True),
    sa.Column("website", sa.Text(), nullable=True),
    sa.Column("settings", JSONB, nullable=True),
    sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
    *_audit(),
)

organization_members = sa.Table(
    "organization_members",
    METADATA,
    _id(),
    sa.Column("role", sa.Text(), nullable=False),
    sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("organization_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("user_id", "organization_id"),
)

workspaces = sa.Table(
    "workspaces",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("slug", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("color", sa.Text(), nullable=True),
    sa.Column("settings", JSONB, nullable=True),
    sa.Column("organization_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("organization_id", "slug"),
)

workspace_members = sa.Table(
    "workspace_members",
    METADATA,
    _id(),
    sa.Column("role", sa.Text(), nullable=False),
    sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("workspace_id", UUID(as_uuid=True), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("user_id", "workspace_id"),
)

workflows = sa.Table(
    "workflows",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("is_default", sa.Boolean(), nullable=False),
    sa.Column("organization_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
)

task_statuses = sa.Table(
    "task_statuses",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("color", sa.Text(), nullable=False),
    sa.Column("category", sa.Text(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("is_default", sa.Boolean(), nullable=False),
    sa.Column("workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("workflow_id", "name"),
)

status_transitions = sa.Table(
    "status_transitions",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False),
    sa.Column("from_status_id", UUID(as_uuid=True), sa.ForeignKey("task_statuses.id", ondelete="CASCADE"), nullable=False),
    sa.Column("to_status_id", UUID(as_uuid=True), sa.ForeignKey("task_statuses.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("workflow_id", "from_status_id", "to_status_id"),
)

projects = sa.Table(
    "projects",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("slug", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("color", sa.Text(), nullable=True),
    sa.Column("status", sa.Text(), nullable=False),
    sa.Column("priority", sa.Text(), nullable=False),
    sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("settings", JSONB, nullable=True),
    sa.Column("workspace_id", UUID(as_uuid=True), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
    sa.Column("workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("workspace_id", "slug"),
)

project_members = sa.Table(
    "project_members",
    METADATA,
    _id(),
    sa.Column("role", sa.Text(), nullable=False),
    sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("user_id", "project_id"),
)

sprints = sa.Table(
    "sprints",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("goal", sa.Text(), nullable=True),
    sa.Column("status", sa.Text(), nullable=False),
    sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("is_default", sa.Boolean(), nullable=False),
    sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
)

tasks = sa.Table(
    "tasks",
    METADATA,
    _id(),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("type", sa.Text(), nullable=False),
    sa.Column("priority", sa.Text(), nullable=False),
    sa.Column("task_number", sa.Integer(), nullable=False),
    sa.Column("slug", sa.Text(), nullable=False),
    sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("story_points", sa.Integer(), nullable=True),
    sa.Column("original_estimate", sa.Integer(), nullable=True),
    sa.Column("remaining_estimate", sa.Integer(), nullable=True),
    sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("reporter_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
    sa.Column("status_id", UUID(as_uuid=True), sa.ForeignKey("task_statuses.id"), nullable=False),
    sa.Column("sprint_id", UUID(as_uuid=True), sa.ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True),
    sa.Column("parent_task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
    *_audit(),
    sa.UniqueConstraint("project_id", "task_number"),
)

task_assignees = sa.Table(
    "task_assignees",
    METADATA,
    sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)

task_dependencies = sa.Table(
    "task_dependencies",
    METADATA,
    _id(),
    sa.Column("type", sa.Text(), nullable=False),
    sa.Column("dependent_task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("blocking_task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("dependent_task_id", "blocking_task_id"),
)

labels = sa.Table(
    "labels",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("color", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("project_id", "name"),
)

task_labels = sa.Table(
    "task_labels",
    METADATA,
    sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    sa.Column("label_id", UUID(as_uuid=True), sa.ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
    *_audit(),
)

task_watchers = sa.Table(
    "task_watchers",
    METADATA,
    _id(),
    sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
    sa.UniqueConstraint("task_id", "user_id"),
)

task_comments = sa.Table(
    "task_comments",
    METADATA,
    _id(),
    sa.Column("content", sa.Text(), nullable=False),
    sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("author_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("parent_comment_id", UUID(as_uuid=True), sa.ForeignKey("task_comments.id", ondelete="CASCADE"), nullable=True),
    *_audit(),
)

time_entries = sa.Table(
    "time_entries",
    METADATA,
    _id(),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("time_spent", sa.Integer(), nullable=False),
    sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
    sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
    sa.Column("date", sa.DateTime(timezone=True), nullable=False),
    sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
)

project_inboxes = sa.Table(
    "project_inboxes",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("email_address", sa.Text(), nullable=True, unique=True),
    sa.Column("auto_reply_enabled", sa.Boolean(), nullable=False),
    sa.Column("auto_reply_template", sa.Text(), nullable=True),
    sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, unique=True),
    *_audit(),
)

inbox_rules = sa.Table(
    "inbox_rules",
    METADATA,
    _id(),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("priority", sa.Integer(), nullable=False),
    sa.Column("enabled", sa.Boolean(), nullable=False),
    sa.Column("stop_on_match", sa.Boolean(), nullable=False),
    sa.Column("conditions", JSONB, nullable=False),
    sa.Column("actions", JSONB, nullable=False),
    sa.Column("inbox_id", UUID(as_uuid=True), sa.ForeignKey("project_inboxes.id", ondelete="CASCADE"), nullable=False),
    *_audit(),
)
