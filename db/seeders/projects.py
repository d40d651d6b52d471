from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import sqlalchemy as sa
from slugify import slugify

from db import schema
from db.defaults import DEFAULT_SPRINT
from db.logging import logger
from db.seeders.base import BaseSeeder
from db.seeders.workspaces import WORKSPACE_MEMBER_ROLES


PROJECT_MEMBER_ROLES = ["OWNER", "MANAGER", "MEMBER", "MEMBER", "MEMBER", "VIEWER"]


def _d(s: str) -> datetime:
    return datetime.fromisoformat(s).replace(tzinfo=UTC)


def _settings(
    time_tracking: bool,
    subtasks: bool,
    dependencies: bool,
    task_type: str,
    unit: str,
    guests: bool,
    approval: bool,
) -> dict:
    return {
        "enableTimeTracking": time_tracking,
        "enableSubtasks": subtasks,
        "enableDependencies": dependencies,
        "defaultTaskType": task_type,
        "estimationUnit": unit,
        "allowGuestAccess": guests,
        "requireApprovalForCompletion": approval,
    }


PROJECTS_BY_WORKSPACE: dict[str, list[dict]] = {
    "dev-team": [
        {
            "name": "TaskPilot Web Application",
            "description": (
                "Main web application built with React, TypeScript, and modern UI components. "
                "Includes user management, task tracking, and collaboration features."
            ),
            "color": "#3b82f6",
            "status": "ACTIVE",
            "priority": "HIGH",
            "start_date": _d("2024-01-15"),
            "end_date": _d("2024-08-30"),
            "settings": _settings(True, True, True, "STORY", "story_points", False, True),
        },
        {
            "name": "Backend API Services",
            "description": (
                "RESTful API backend services built with NestJS, PostgreSQL, and Redis. "
                "Handles authentication, data management, and third-party integrations."
            ),
            "color": "#10b981",
            "status": "ACTIVE",
            "priority": "HIGH",
            "start_date": _d("2024-01-01"),
            "end_date": _d("2024-07-15"),
            "settings": _settings(True, True, True, "TASK", "hours", False, False),
        },
        {
            "name": "DevOps Infrastructure",
            "description": (
                "Cloud infrastructure, CI/CD pipelines, monitoring, and deployment automation "
                "using AWS, Docker, and Kubernetes."
            ),
            "color": "#f59e0b",
            "status": "ACTIVE",
            "priority": "MEDIUM",
            "start_date": _d("2024-02-01"),
            "end_date": _d("2024-06-30"),
            "settings": _settings(False, False, True, "TASK", "hours", False, True),
        },
    ],
    "design-ux": [
        {
            "name": "UI Design System",
            "description": (
                "Comprehensive design system with components, patterns, and guidelines for "
                "consistent user experience across all products."
            ),
            "color": "#8b5cf6",
            "status": "ACTIVE",
            "priority": "MEDIUM",
            "start_date": _d("2024-01-20"),
            "end_date": _d("2024-05-15"),
            "settings": _settings(False, True, False, "TASK", "story_points", True, True),
        },
        {
            "name": "User Research & Testing",
            "description": (
                "User research initiatives, usability testing, and feedback collection to inform "
                "product decisions."
            ),
            "color": "#ec4899",
            "status": "PLANNING",
            "priority": "LOW",
            "start_date": _d("2024-03-01"),
            "end_date": _d("2024-12-31"),
            "settings": _settings(True, False, False, "TASK", "hours", True, False),
        },
    ],
    "marketing": [
        {
            "name": "Product Launch Campaign",
            "description": (
                "Comprehensive marketing campaign for product launch including content creation, "
                "social media, and promotional activities."
            ),
            "color": "#f59e0b",
            "status": "ACTIVE",
            "priority": "HIGH",
            "start_date": _d("2024-02-15"),
            "end_date": _d("2024-06-01"),
            "settings": _settings(True, True, False, "TASK", "hours", True, True),
        },
    ],
    "client-projects": [
        {
            "name": "E-commerce Platform - TechCorp",
            "description": (
                "Custom e-commerce platform development for TechCorp client with advanced "
                "inventory management and analytics."
            ),
            "color": "#059669",
            "status": "ACTIVE",
            "priority": "HIGH",
            "start_date": _d("2024-01-10"),
            "end_date": _d("2024-04-30"),
            "settings": _settings(True, True, True, "STORY", "hours", True, True),
        },
        {
            "name": "Mobile App - FinanceFlow",
            "description": (
                "React Native mobile application for personal finance management with real-time "
                "synchronization and reporting."
            ),
            "color": "#3730a3",
            "status": "PLANNING",
            "priority": "MEDIUM",
            "start_date": _d("2024-03-15"),
            "end_date": _d("2024-08-15"),
            "settings": _settings(True, True, True, "STORY", "story_points", True, False),
        },
    ],
    "internal-ops": [
        {
            "name": "HR Process Automation",
            "description": (
                "Streamline HR processes including employee onboarding, performance reviews, "
                "and leave management."
            ),
            "color": "#6b7280",
            "status": "ON_HOLD",
            "priority": "LOW",
            "start_date": _d("2024-04-01"),
            "end_date": _d("2024-09-30"),
            "settings": _settings(False, False, False, "TASK", "hours", False, True),
        },
    ],
}


def projects_for(workspace_slug: str, now: datetime) -> list[dict]:
    if workspace_slug in PROJECTS_BY_WORKSPACE:
        return PROJECTS_BY_WORKSPACE[workspace_slug]
    return [
        {
            "name": "General Tasks",
            "description": "General project for miscellaneous tasks and activities",
            "color": "#6b7280",
            "status": "ACTIVE",
            "priority": "MEDIUM",
            "start_date": now,
            "end_date": now + timedelta(days=90),
            "settings": _settings(True, False, False, "TASK", "hours", False, False),
        }
    ]


class ProjectsSeeder(BaseSeeder):
    name = "projects"

    def _default_workflow_id(self, organization_id: uuid.UUID) -> uuid.UUID | None:
        w = schema.workflows
        row = self._first(
            sa.select(w.c.id).where(w.c.organization_id == organization_id, w.c.is_default.is_(True)).limit(1)
        )
        return row["id"] if row else None

    def _workspace_member_ids(self, workspace_id: uuid.UUID) -> list[uuid.UUID]:
        """Workspace members ordered by the role ladder they were added with (OWNER first)."""
        m = schema.workspace_members
        rows = self._all(sa.select(m.c.user_id, m.c.role).where(m.c.workspace_id == workspace_id))
        rank = {role: i for i, role in enumerate(dict.fromkeys(WORKSPACE_MEMBER_ROLES))}
        rows.sort(key=lambda r: (rank.get(r["role"], len(rank)), str(r["user_id"])))
        return [r["user_id"] for r in rows]

    def seed(self, workspaces: list[dict], users: list[dict]) -> list[dict]:
        if not workspaces:
            raise ValueError("Workspaces must be seeded before projects")
        if not users:
            raise ValueError("Users must be seeded before projects")

        logger.info("seed_step_started", step=self.name)
        p = schema.projects
        created: list[dict] = []
        for workspace in workspaces:
            workflow_id = self._default_workflow_id(workspace["organization_id"])
            if workflow_id is None:
                logger.warning("workspace_without_default_workflow", workspace=workspace["slug"])
                continue

            member_ids = self._workspace_member_ids(workspace["id"])
            creator_id = member_ids[0] if member_ids else users[0]["id"]
            for data in projects_for(workspace["slug"], self.now):
                slug = slugify(data["name"])
                row = {
                    "id": self._uuid(workspace["id"], slug),
                    **data,
                    "slug": slug,
                    "workspace_id": workspace["id"],
                    "workflow_id": workflow_id,
                    **self._audit(creator_id),
                }
                if self._try_insert(p, row):
                    self._create_default_sprint(row["id"], creator_id)
                    self._add_members(row["id"], member_ids)
                    created.append(row)
                    continue
                existing = self._first(sa.select(p).where(p.c.workspace_id == workspace["id"], p.c.slug == slug))
                if existing:
                    created.append(existing)

        logger.info("seed_step_finished", step=self.name, projects=len(created))
        return created

    def _create_default_sprint(self, project_id: uuid.UUID, creator_id: uuid.UUID) -> None:
        self.conn.execute(
            sa.insert(schema.sprints).values(
                id=self._uuid(project_id, "default-sprint"),
                **DEFAULT_SPRINT,
                project_id=project_id,
                **self._audit(creator_id),
            )
        )

    def _add_members(self, project_id: uuid.UUID, member_ids: list[uuid.UUID]) -> None:
        for user_id, role in zip(member_ids, PROJECT_MEMBER_ROLES):
            self._try_insert(
                schema.project_members,
                {
                    "id": self._uuid(project_id, user_id),
                    "role": role,
                    "joined_at": self.now,
                    "user_id": user_id,
                    "project_id": project_id,
                    **self._audit(None),
                },
            )

    def clear(self) -> int:
        self._delete_all(schema.project_members)
        self._delete_all(schema.sprints)
        return self._delete_all(schema.projects)
