from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


UserRole = Literal["SUPER_ADMIN", "ADMIN", "MANAGER", "MEMBER", "VIEWER"]
MemberRole = Literal["OWNER", "ADMIN", "MANAGER", "MEMBER", "VIEWER"]
ProjectStatus = Literal["PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED"]
ProjectPriority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
TaskType = Literal["TASK", "BUG", "EPIC", "STORY", "SUBTASK"]
TaskPriority = Literal["LOWEST", "LOW", "MEDIUM", "HIGH", "HIGHEST"]
StatusCategory = Literal["TODO", "IN_PROGRESS", "DONE"]
DependencyType = Literal["BLOCKS", "FINISH_START", "START_START", "FINISH_FINISH", "START_FINISH"]
TemplateCategoryValue = Literal["auto-reply", "welcome", "support", "notification", "custom"]

Name = Annotated[str, Field(min_length=1, max_length=200)]
Color = Annotated[str, Field(pattern=r"^#[0-9a-fA-F]{6}$")]
Slug = Annotated[str, Field(pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", max_length=100)]


def _as_utc(value: datetime) -> datetime:
    # Naive client timestamps are read as UTC; stored columns are timestamptz.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RowModel(BaseModel):
    """Response model built from a DB row mapping; unknown columns are dropped."""

    model_config = ConfigDict(extra="ignore")


def _check_range(start: datetime | None, end: datetime | None, what: str) -> None:
    if start and end and end < start:
        raise ValueError(f"{what} must not end before it starts")


# --- users -------------------------------------------------------------------


class UserCreate(StrictModel):
    email: Annotated[str, Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=254)]
    username: Annotated[str, Field(pattern=r"^[A-Za-z0-9_.-]{3,50}$")] | None = None
    first_name: Name
    last_name: Name
    password: Annotated[str, Field(min_length=8, max_length=128)]
    role: UserRole = "MEMBER"
    bio: str | None = None
    avatar: str | None = None
    timezone: str = "UTC"


class UserOut(RowModel):
    id: UUID
    email: str
    username: str | None
    first_name: str
    last_name: str
    avatar: str | None = None
    bio: str | None = None
    role: str
    status: str
    email_verified: bool
    timezone: str
    created_at: datetime


class UserSummary(RowModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    avatar: str | None = None


# --- organizations / workspaces / memberships ---------------------------------


class OrganizationCreate(StrictModel):
    name: Name
    slug: Slug | None = None
    description: str | None = None
    website: str | None = None
    avatar: str | None = None
    settings: dict[str, Any] | None = None


class OrganizationOut(RowModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    website: str | None = None
    avatar: str | None = None
    settings: dict[str, Any] | None = None
    owner_id: UUID
    created_at: datetime


class MemberAdd(StrictModel):
    user_id: UUID
    role: MemberRole = "MEMBER"


class MemberOut(RowModel):
    id: UUID
    user_id: UUID
    role: str
    joined_at: datetime
    email: str
    first_name: str
    last_name: str


class WorkspaceCreate(StrictModel):
    organization_id: UUID
    name: Name
    slug: Slug | None = None
    description: str | None = None
    color: Color | None = None
    settings: dict[str, Any] | None = None


class WorkspaceOut(RowModel):
    id: UUID
    organization_id: UUID
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    settings: dict[str, Any] | None = None
    created_at: datetime


# --- workflows ----------------------------------------------------------------


class WorkflowOut(RowModel):
    id: UUID
    organization_id: UUID
    name: str
    description: str | None = None
    is_default: bool


class TaskStatusCreate(StrictModel):
    name: Name
    color: Color = "#6b7280"
    category: StatusCategory = "TODO"
    position: Annotated[int, Field(ge=0)] | None = None


class TaskStatusOut(RowModel):
    id: UUID
    workflow_id: UUID
    name: str
    color: str
    category: str
    position: int
    is_default: bool


class StatusReorder(StrictModel):
    status_ids: Annotated[list[UUID], Field(min_length=1)]


class TransitionCreate(StrictModel):
    from_status_id: UUID
    to_status_id: UUID
    name: str | None = None

    @model_validator(mode="after")
    def _distinct(self):
        if self.from_status_id == self.to_status_id:
            raise ValueError("a transition needs two different statuses")
        return self


class TransitionOut(RowModel):
    id: UUID
    workflow_id: UUID
    name: str | None
    from_status_id: UUID
    to_status_id: UUID


# --- projects / sprints -------------------------------------------------------


class ProjectCreate(StrictModel):
    workspace_id: UUID
    name: Name
    slug: Slug | None = None
    description: str | None = None
    color: Color | None = None
    status: ProjectStatus = "PLANNING"
    priority: ProjectPriority = "MEDIUM"
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    settings: dict[str, Any] | None = None
    workflow_id: UUID | None = None

    @model_validator(mode="after")
    def _dates(self):
        _check_range(self.start_date, self.end_date, "project")
        return self


class ProjectUpdate(StrictModel):
    name: Name | None = None
    description: str | None = None
    color: Color | None = None
    status: ProjectStatus | None = None
    priority: ProjectPriority | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    settings: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _dates(self):
        _check_range(self.start_date, self.end_date, "project")
        return self


class ProjectOut(RowModel):
    id: UUID
    workspace_id: UUID
    workflow_id: UUID
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    status: str
    priority: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    settings: dict[str, Any] | None = None
    created_at: datetime


class SprintCreate(StrictModel):
    project_id: UUID
    name: Name
    goal: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None

    @model_validator(mode="after")
    def _dates(self):
        _check_range(self.start_date, self.end_date, "sprint")
        return self


class SprintOut(RowModel):
    id: UUID
    project_id: UUID
    name: str
    goal: str | None = None
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_default: bool


# --- tasks --------------------------------------------------------------------


class TaskCreate(StrictModel):
    project_id: UUID
    title: Annotated[str, Field(min_length=1, max_length=500)]
    description: str | None = None
    type: TaskType = "TASK"
    priority: TaskPriority = "MEDIUM"
    status_id: UUID | None = None
    sprint_id: UUID | None = None
    parent_task_id: UUID | None = None
    start_date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    story_points: Annotated[int, Field(ge=0, le=100)] | None = None
    original_estimate: Annotated[int, Field(ge=0)] | None = None
    assignee_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dates(self):
        _check_range(self.start_date, self.due_date, "task")
        return self


class TaskUpdate(StrictModel):
    title: Annotated[str, Field(min_length=1, max_length=500)] | None = None
    description: str | None = None
    type: TaskType | None = None
    priority: TaskPriority | None = None
    sprint_id: UUID | None = None
    parent_task_id: UUID | None = None
    start_date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    story_points: Annotated[int, Field(ge=0, le=100)] | None = None
    original_estimate: Annotated[int, Field(ge=0)] | None = None
    remaining_estimate: Annotated[int, Field(ge=0)] | None = None

    @model_validator(mode="after")
    def _dates(self):
        _check_range(self.start_date, self.due_date, "task")
        return self


class TaskStatusChange(StrictModel):
    status_id: UUID


class TaskAssign(StrictModel):
    user_ids: list[UUID]


class TaskOut(RowModel):
    id: UUID
    project_id: UUID
    task_number: int
    slug: str
    title: str
    description: str | None = None
    type: str
    priority: str
    status_id: UUID
    sprint_id: UUID | None = None
    parent_task_id: UUID | None = None
    reporter_id: UUID | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    story_points: int | None = None
    original_estimate: int | None = None
    remaining_estimate: int | None = None
    assignee_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime


class TaskPage(BaseModel):
    items: list[TaskOut]
    total: int
    page: int
    limit: int


class StatusColumn(BaseModel):
    status: TaskStatusOut
    tasks: list[TaskOut]


# --- comments / labels / dependencies / watchers / time ----------------------


class CommentCreate(StrictModel):
    content: Annotated[str, Field(min_length=1, max_length=10_000)]
    parent_comment_id: UUID | None = None


class CommentOut(RowModel):
    id: UUID
    task_id: UUID
    author_id: UUID
    parent_comment_id: UUID | None = None
    content: str
    created_at: datetime
    replies: list[CommentOut] = Field(default_factory=list)


class LabelCreate(StrictModel):
    project_id: UUID
    name: Annotated[str, Field(min_length=1, max_length=50)]
    color: Color
    description: str | None = None


class LabelOut(RowModel):
    id: UUID
    project_id: UUID
    name: str
    color: str
    description: str | None = None


class DependencyCreate(StrictModel):
    dependent_task_id: UUID
    blocking_task_id: UUID
    type: DependencyType = "BLOCKS"


class DependencyOut(RowModel):
    id: UUID
    dependent_task_id: UUID
    blocking_task_id: UUID
    type: str
    created_at: datetime


class TaskDependencies(BaseModel):
    depends_on: list[DependencyOut]
    blocks: list[DependencyOut]


class DependencyStats(BaseModel):
    total_dependencies: int
    blocked_tasks: int
    critical_path: list[UUID]


class WatcherOut(RowModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    created_at: datetime


class WatchToggle(BaseModel):
    watching: bool


class TimeEntryCreate(StrictModel):
    time_spent: Annotated[int, Field(gt=0, le=24 * 60)]
    description: str | None = None
    date: UtcDatetime | None = None
    start_time: UtcDatetime | None = None
    end_time: UtcDatetime | None = None

    @model_validator(mode="after")
    def _times(self):
        _check_range(self.start_time, self.end_time, "time entry")
        return self


class TimeEntryOut(RowModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    description: str | None = None
    time_spent: int
    date: datetime
    start_time: datetime | None = None
    end_time: datetime | None = None


class TimeEntryList(BaseModel):
    items: list[TimeEntryOut]
    total_minutes: int


# --- inboxes ------------------------------------------------------------------


class InboxCreate(StrictModel):
    name: Name
    email_address: str | None = None
    auto_reply_enabled: bool = False
    auto_reply_template: str | None = None


class InboxOut(RowModel):
    id: UUID
    project_id: UUID
    name: str
    email_address: str | None = None
    auto_reply_enabled: bool
    auto_reply_template: str | None = None


# --- gantt --------------------------------------------------------------------


class GanttStatus(BaseModel):
    name: str
    color: str


class GanttTask(BaseModel):
    id: UUID
    title: str
    start: datetime | None
    end: datetime | None
    progress: int
    dependencies: list[UUID]
    assignees: list[UserSummary]
    priority: str
    status: GanttStatus
    type: str
    key: str
    parent: UUID | None = None
    children: list[GanttTask] = Field(default_factory=list)


class Timeline(BaseModel):
    start: datetime
    end: datetime
    duration: int


class Milestone(BaseModel):
    id: str
    title: str
    date: datetime
    type: Literal["sprint_start", "sprint_end", "project_milestone"]


class GanttData(BaseModel):
    tasks: list[GanttTask]
    timeline: Timeline
    critical_path: list[UUID]
    milestones: list[Milestone]


class ResourceTask(BaseModel):
    id: UUID
    title: str
    start: datetime | None
    end: datetime | None
    story_points: int


class ResourceAllocation(BaseModel):
    assignee: UserSummary
    tasks: list[ResourceTask]
    workload: float


class RescheduleRequest(StrictModel):
    mode: Literal["move", "resize_start", "resize_end"]
    delta_px: float
    view_mode: Literal["days", "weeks", "months"] = "days"
    cell_width: Annotated[float, Field(gt=0)] | None = None


# --- email templates ----------------------------------------------------------


class EmailTemplate(StrictModel):
    id: str
    name: str
    subject: str
    content: str
    category: TemplateCategoryValue
    variables: list[str]
    is_default: bool
    description: str | None = None


class TemplateCategory(StrictModel):
    value: str
    label: str
    description: str


class TemplateVariable(StrictModel):
    name: str
    description: str


class TemplateValidateRequest(StrictModel):
    name: str | None = None
    subject: str | None = None
    content: str | None = None
    category: str | None = None
    variables: list[str] | None = None


class TemplateValidation(BaseModel):
    is_valid: bool
    errors: list[str]


class TemplateRenderRequest(StrictModel):
    values: dict[str, str | None]


class RenderedTemplate(BaseModel):
    subject: str
    content: str


# --- admin --------------------------------------------------------------------


class AdminSeedRequest(StrictModel):
    seed: int = 1337
