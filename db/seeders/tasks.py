from __future__ import annotations

import math
import random
import uuid
from datetime import datetime, timedelta

import sqlalchemy as sa
from slugify import slugify

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


# (title, description, type, priority, story points, original estimate (min), remaining (min), start day, due day)
TaskTemplate = tuple[str, str, str, str, int, int, int, int, int]

TASK_TEMPLATES: list[tuple[str, list[TaskTemplate]]] = [
    (
        "Web Application",
        [
            ("Set up development environment", "Configure local development environment with Node.js, React, and necessary dependencies. Include documentation for other developers.", "TASK", "HIGH", 3, 480, 0, -21, -14),
            ("Design user authentication flow", "Create wireframes and user flow diagrams for login, signup, and password reset functionality.", "STORY", "HIGH", 5, 720, 0, -18, -10),
            ("Implement JWT authentication", "Build secure JWT-based authentication system with refresh tokens and proper error handling.", "TASK", "HIGH", 8, 960, 240, -10, 4),
            ("Create responsive dashboard layout", "Build main dashboard with responsive grid layout, navigation sidebar, and header components.", "STORY", "MEDIUM", 5, 600, 480, -5, 7),
            ("Fix authentication redirect bug", "Users are not being redirected to the correct page after login. Investigate and fix routing issue.", "BUG", "HIGH", 2, 240, 240, 0, 3),
            ("Add dark mode toggle", "Implement theme switching functionality with user preference persistence.", "TASK", "LOW", 3, 360, 360, 3, 14),
            ("User management epic", "Epic for all user-related features including profiles, permissions, and account settings.", "EPIC", "MEDIUM", 21, 2400, 2400, 7, 42),
            ("Implement user profile editing", "Allow users to edit their profile information, avatar, and preferences.", "STORY", "MEDIUM", 5, 600, 600, 14, 21),
            ("Add email notification system", "Send email notifications for important events like password changes, account updates.", "TASK", "MEDIUM", 8, 960, 960, 10, 21),
            ("Performance optimization", "Optimize bundle size, implement lazy loading, and improve page load times.", "TASK", "LOW", 13, 1440, 1440, 28, 56),
        ],
    ),
    (
        "Backend API",
        [
            ("Set up NestJS project structure", "Initialize NestJS application with proper folder structure, modules, and configuration.", "TASK", "HIGH", 3, 480, 0, -20, -18),
            ("Design database schema", "Create comprehensive database schema with proper relationships and constraints.", "TASK", "HIGH", 8, 960, 0, -15, -10),
            ("Implement user CRUD operations", "Build complete user management API with create, read, update, delete operations.", "STORY", "HIGH", 5, 720, 120, -8, 2),
            ("Add input validation middleware", "Implement comprehensive input validation using class-validator and transform pipes.", "TASK", "MEDIUM", 3, 360, 360, 1, 7),
            ("Fix database connection pool issue", "Database connections are not being properly released, causing pool exhaustion.", "BUG", "HIGH", 5, 480, 480, 0, 2),
            ("Implement rate limiting", "Add rate limiting middleware to prevent API abuse and ensure service stability.", "TASK", "MEDIUM", 3, 360, 360, 3, 7),
            ("API documentation with Swagger", "Generate comprehensive API documentation using Swagger/OpenAPI specifications.", "TASK", "LOW", 5, 600, 600, 7, 14),
            ("Implement caching layer", "Add Redis caching for frequently accessed data to improve API performance.", "STORY", "MEDIUM", 8, 960, 960, 14, 28),
        ],
    ),
    (
        "Design System",
        [
            ("Define color palette and typography", "Establish primary and secondary colors, typography scale, and spacing system.", "TASK", "HIGH", 5, 600, 0, -14, -10),
            ("Create button component variants", "Design and document all button states: primary, secondary, outline, ghost, with sizes.", "STORY", "HIGH", 3, 480, 120, -7, 1),
            ("Build form input components", "Create text inputs, selects, checkboxes, and radio buttons with validation states.", "STORY", "MEDIUM", 8, 960, 960, 2, 7),
            ("Document component usage guidelines", "Write comprehensive documentation for when and how to use each component.", "TASK", "MEDIUM", 5, 600, 600, 7, 14),
            ("Create navigation components", "Design and implement navigation bar, sidebar, breadcrumbs, and pagination components.", "STORY", "MEDIUM", 8, 960, 960, 10, 21),
            ("Build modal and overlay components", "Create reusable modal, tooltip, popover, and drawer components with accessibility.", "TASK", "LOW", 13, 1440, 1440, 21, 42),
        ],
    ),
    (
        "Marketing Campaign",
        [
            ("Research target audience", "Conduct market research to identify key demographics and user personas.", "TASK", "HIGH", 5, 720, 0, -12, -8),
            ("Create campaign messaging strategy", "Develop key messages, value propositions, and communication guidelines.", "STORY", "HIGH", 8, 960, 240, -6, 2),
            ("Design social media assets", "Create graphics, banners, and templates for various social media platforms.", "TASK", "MEDIUM", 5, 600, 600, 1, 7),
            ("Launch email campaign", "Set up automated email sequences and launch initial campaign to subscriber list.", "TASK", "HIGH", 3, 480, 480, 5, 14),
            ("Create landing page content", "Write compelling copy and create visuals for campaign landing pages.", "STORY", "MEDIUM", 8, 960, 960, 7, 21),
        ],
    ),
]

HIGH_COMPLEXITY_POINTS = 13


def _task(t: TaskTemplate, start: datetime, due: datetime) -> dict:
    title, description, type_, priority, points, estimate, remaining, _, _ = t
    return {
        "title": title,
        "description": description,
        "type": type_,
        "priority": priority,
        "story_points": points,
        "original_estimate": estimate,
        "remaining_estimate": remaining,
        "start_date": start,
        "due_date": due,
    }


def base_tasks_for(project: dict, now: datetime) -> list[dict]:
    day = timedelta(days=1)
    for marker, templates in TASK_TEMPLATES:
        if marker in project["name"]:
            return [_task(t, now + t[7] * day, now + t[8] * day) for t in templates]

    # Early tasks hang off the project's own start date.
    start = project.get("start_date") or now - 30 * day
    return [
        _task(("Project planning and requirements gathering", "Define project scope, gather requirements, and create initial project plan.", "TASK", "HIGH", 5, 720, 0, 0, 0), start, start + 5 * day),
        _task(("Set up project infrastructure", "Initialize project repository, CI/CD pipeline, and development environment.", "TASK", "HIGH", 3, 480, 120, 0, 0), start + 3 * day, start + 7 * day),
        _task(("Implement core functionality", "Build the main features and functionality as defined in requirements.", "STORY", "MEDIUM", 13, 1440, 1440, 0, 0), now + day, now + 21 * day),
        _task(("Testing and quality assurance", "Write tests, perform manual testing, and ensure quality standards are met.", "TASK", "MEDIUM", 8, 960, 960, 0, 0), now + 14 * day, now + 28 * day),
        _task(("Documentation and deployment", "Create user documentation and deploy the application to production.", "TASK", "LOW", 5, 600, 600, 0, 0), now + 21 * day, now + 35 * day),
    ]


def distribute_across_statuses(
    base_tasks: list[dict], statuses: list[dict], rng: random.Random
) -> list[tuple[dict, dict]]:
    """
    Spread tasks roughly 40% TODO / 35% IN_PROGRESS / rest DONE, oldest tasks done first.

    Completed tasks carry no remaining estimate; in-progress ones keep 30-90% of it.
    """
    ordered = sorted(statuses, key=lambda s: s["position"])
    by_cat = {cat: [s for s in ordered if s["category"] == cat] for cat in schema.STATUS_CATEGORIES}

    total = len(base_tasks)
    todo_count = math.ceil(total * 0.4)
    in_progress_count = math.ceil(total * 0.35)
    done_count = total - todo_count - in_progress_count

    out: list[tuple[dict, dict]] = []
    i = 0
    if by_cat["DONE"]:
        for n in range(done_count):
            if i >= total:
                break
            out.append(({**base_tasks[i], "remaining_estimate": 0}, by_cat["DONE"][n % len(by_cat["DONE"])]))
            i += 1
    if by_cat["IN_PROGRESS"]:
        for n in range(in_progress_count):
            if i >= total:
                break
            task = base_tasks[i]
            remaining = math.floor((task["remaining_estimate"] or 0) * (0.3 + rng.random() * 0.6))
            out.append(({**task, "remaining_estimate": remaining}, by_cat["IN_PROGRESS"][n % len(by_cat["IN_PROGRESS"])]))
            i += 1

    todo = by_cat["TODO"] or ordered[:1]
    n = 0
    while i < total and todo:
        out.append((base_tasks[i], todo[n % len(todo)]))
        i += 1
        n += 1
    return out


def completed_at_for(start: datetime, due: datetime, rng: random.Random) -> datetime:
    # 80-120% of the planned duration.
    return start + (due - start) * (0.8 + rng.random() * 0.4)


def assignees_for(task: dict, available_user_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    if (task.get("story_points") or 0) >= HIGH_COMPLEXITY_POINTS:
        return available_user_ids[:2]
    return available_user_ids[:1]


class TasksSeeder(BaseSeeder):
    name = "tasks"

    def _statuses(self, workflow_id: uuid.UUID) -> list[dict]:
        ts = schema.task_statuses
        return self._all(sa.select(ts).where(ts.c.workflow_id == workflow_id).order_by(ts.c.position))

    def _default_sprint_id(self, project_id: uuid.UUID) -> uuid.UUID | None:
        s = schema.sprints
        row = self._first(sa.select(s.c.id).where(s.c.project_id == project_id, s.c.is_default.is_(True)).limit(1))
        return row["id"] if row else None

    def _member_ids(self, project_id: uuid.UUID) -> list[uuid.UUID]:
        m = schema.project_members
        rows = self._all(sa.select(m.c.user_id, m.c.role).where(m.c.project_id == project_id))
        rank = {r: i for i, r in enumerate(schema.MEMBER_ROLES)}
        rows.sort(key=lambda r: (rank.get(r["role"], len(rank)), str(r["user_id"])))
        return [r["user_id"] for r in rows]

    def _has_tasks(self, project_id: uuid.UUID) -> bool:
        t = schema.tasks
        return self._first(sa.select(t.c.id).where(t.c.project_id == project_id).limit(1)) is not None

    def seed(self, projects: list[dict], users: list[dict]) -> list[dict]:
        if not projects:
            raise ValueError("Projects must be seeded before tasks")
        if not users:
            raise ValueError("Users must be seeded before tasks")

        logger.info("seed_step_started", step=self.name)
        created: list[dict] = []
        for project in projects:
            if self._has_tasks(project["id"]):
                logger.info("project_already_has_tasks", project=project["slug"])
                continue
            statuses = self._statuses(project["workflow_id"])
            if not statuses:
                logger.warning("project_without_statuses", project=project["slug"])
                continue

            sprint_id = self._default_sprint_id(project["id"])
            available = self._member_ids(project["id"]) or [u["id"] for u in users[:4]]
            reporter_id = available[0]

            planned = distribute_across_statuses(base_tasks_for(project, self.now), statuses, self.rng)
            for number, (task, status) in enumerate(planned, start=1):
                completed_at = None
                if status["category"] == "DONE":
                    completed_at = completed_at_for(task["start_date"], task["due_date"], self.rng)
                row = {
                    "id": self._uuid(project["id"], number),
                    **task,
                    "task_number": number,
                    "slug": slugify(f"{project['slug']}-{number}"),
                    "completed_at": completed_at,
                    "project_id": project["id"],
                    "reporter_id": reporter_id,
                    "status_id": status["id"],
                    "sprint_id": sprint_id,
                    "parent_task_id": None,
                    **self._audit(reporter_id),
                }
                if not self._try_insert(schema.tasks, row):
                    continue
                self._insert_many(
                    schema.task_assignees,
                    [{"task_id": row["id"], "user_id": uid, "created_at": self.now} for uid in assignees_for(task, available)],
                )
                created.append({**row, "status_category": status["category"], "project_name": project["name"]})

        logger.info("seed_step_finished", step=self.name, tasks=len(created))
        return created

    def clear(self) -> int:
        self._delete_all(schema.time_entries)
        self._delete_all(schema.task_watchers)
        self._delete_all(schema.task_labels)
        self._delete_all(schema.task_dependencies)
        self._delete_all(schema.task_comments)
        self._delete_all(schema.task_assignees)
        return self._delete_all(schema.tasks)
