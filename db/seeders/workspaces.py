from __future__ import annotations

import uuid

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


WORKSPACE_MEMBER_ROLES = ["OWNER", "MANAGER", "MEMBER", "MEMBER", "MEMBER", "VIEWER", "MEMBER"]


def _settings(guests: bool, visibility: str, time_tracking: bool, git: bool, flow: str, sprint_days: int | None) -> dict:
    return {
        "allowExternalGuests": guests,
        "defaultProjectVisibility": visibility,
        "enableTimeTracking": time_tracking,
        "enableGitIntegration": git,
        "workflowType": flow,
        "sprintDuration": sprint_days,
    }


WORKSPACES_BY_ORG: dict[str, list[dict]] = {
    "taskpilot-inc": [
        {
            "name": "Development Team",
            "slug": "dev-team",
            "description": "Main development workspace for product engineering",
            "color": "#3b82f6",
            "settings": _settings(False, "private", True, True, "scrum", 14),
        },
        {
            "name": "Design & UX",
            "slug": "design-ux",
            "description": "Creative workspace for design and user experience teams",
            "color": "#8b5cf6",
            "settings": _settings(True, "internal", False, False, "kanban", None),
        },
        {
            "name": "Marketing",
            "slug": "marketing",
            "description": "Marketing campaigns and content creation workspace",
            "color": "#f59e0b",
            "settings": _settings(True, "internal", True, False, "kanban", None),
        },
    ],
    "tech-innovators": [
        {
            "name": "Client Projects",
            "slug": "client-projects",
            "description": "Workspace for managing client deliverables and projects",
            "color": "#10b981",
            "settings": _settings(True, "private", True, True, "scrum", 7),
        },
        {
            "name": "Internal Operations",
            "slug": "internal-ops",
            "description": "Internal processes, HR, and administrative tasks",
            "color": "#6b7280",
            "settings": _settings(False, "internal", False, False, "kanban", None),
        },
    ],
}

DEFAULT_WORKSPACES: list[dict] = [
    {
        "name": "General",
        "slug": "general",
        "description": "Default workspace for general project management",
        "color": "#6b7280",
        "settings": _settings(False, "private", True, False, "kanban", None),
    }
]


def workspaces_for(org_slug: str) -> list[dict]:
    return WORKSPACES_BY_ORG.get(org_slug, DEFAULT_WORKSPACES)


class WorkspacesSeeder(BaseSeeder):
    name = "workspaces"

    def _org_member_ids(self, organization_id: uuid.UUID, users: list[dict]) -> list[uuid.UUID]:
        """Org member user ids, in the order the users were seeded."""
        m = schema.organization_members
        member_ids = {r["user_id"] for r in self._all(sa.select(m.c.user_id).where(m.c.organization_id == organization_id))}
        return [u["id"] for u in users if u["id"] in member_ids]

    def seed(self, organizations: list[dict], users: list[dict]) -> list[dict]:
        if not organizations:
            raise ValueError("Organizations must be seeded before workspaces")
        if not users:
            raise ValueError("Users must be seeded before workspaces")

        logger.info("seed_step_started", step=self.name)
        w = schema.workspaces
        created: list[dict] = []
        for org in organizations:
            member_ids = self._org_member_ids(org["id"], users)
            creator_id = member_ids[0] if member_ids else users[0]["id"]
            for data in workspaces_for(org["slug"]):
                row = {
                    "id": self._uuid(org["id"], data["slug"]),
                    **data,
                    "organization_id": org["id"],
                    **self._audit(creator_id),
                }
                if self._try_insert(w, row):
                    self._add_members(row["id"], member_ids)
                    created.append(row)
                    continue
                existing = self._first(sa.select(w).where(w.c.organization_id == org["id"], w.c.slug == data["slug"]))
                if existing:
                    created.append(existing)

        logger.info("seed_step_finished", step=self.name, workspaces=len(created))
        return created

    def _add_members(self, workspace_id: uuid.UUID, member_ids: list[uuid.UUID]) -> None:
        for user_id, role in zip(member_ids, WORKSPACE_MEMBER_ROLES):
            self._try_insert(
                schema.workspace_members,
                {
                    "id": self._uuid(workspace_id, user_id),
                    "role": role,
                    "joined_at": self.now,
                    "user_id": user_id,
                    "workspace_id": workspace_id,
                    **self._audit(None),
                },
            )

    def clear(self) -> int:
        self._delete_all(schema.workspace_members)
        return self._delete_all(schema.workspaces)
