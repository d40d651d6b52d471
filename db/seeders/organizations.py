from __future__ import annotations

import copy
import uuid

import sqlalchemy as sa

from db import schema
from db.defaults import DEFAULT_ORG_SETTINGS
from db.logging import logger
from db.seeders.base import BaseSeeder
from db.seeders.workflows import WorkflowsSeeder


ORG_MEMBER_ROLES = ["OWNER", "MANAGER", "MEMBER", "MEMBER", "MEMBER", "VIEWER", "MEMBER"]

ORGANIZATIONS_DATA: list[dict] = [
    {
        "name": "TaskPilot Inc.",
        "slug": "taskpilot-inc",
        "description": "A comprehensive task management solution for modern teams",
        "website": "https://taskpilot.com",
        "avatar": "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=150",
        "settings": copy.deepcopy(DEFAULT_ORG_SETTINGS),
    },
    {
        "name": "Tech Innovators LLC",
        "slug": "tech-innovators",
        "description": "Innovation-driven technology consultancy",
        "website": "https://techinnovators.example.com",
        "avatar": "https://images.unsplash.com/photo-1549923746-c502d488b3ea?w=150",
        "settings": {
            **copy.deepcopy(DEFAULT_ORG_SETTINGS),
            "allowPublicSignup": True,
            "defaultUserRole": "VIEWER",
            "enableTimeTracking": False,
            "enableAutomation": False,
            "workingHours": {"start": "08:30", "end": "16:30"},
            "timezone": "America/New_York",
        },
    },
]


def pick_owner(users: list[dict]) -> dict:
    for u in users:
        if u["role"] in ("SUPER_ADMIN", "ADMIN"):
            return u
    return users[0]


class OrganizationsSeeder(BaseSeeder):
    name = "organizations"

    def seed(self, users: list[dict], orgs_data: list[dict] | None = None) -> list[dict]:
        if not users:
            raise ValueError("Users must be seeded before organizations")

        logger.info("seed_step_started", step=self.name)
        owner = pick_owner(users)
        workflows = WorkflowsSeeder(self.conn, self.rng, self.now)
        o = schema.organizations

        organizations: list[dict] = []
        for data in orgs_data or ORGANIZATIONS_DATA:
            existing = self._first(sa.select(o).where(o.c.slug == data["slug"]))
            if existing:
                logger.info("organization_exists", slug=data["slug"])
                organizations.append(existing)
                # Still add members in case they're missing.
                self.add_members(existing["id"], users)
                continue

            row = {"id": self._uuid(data["slug"]), **data, "owner_id": owner["id"], **self._audit(owner["id"])}
            if not self._try_insert(o, row):
                continue
            workflows.create_default(row["id"], owner["id"])
            self.add_members(row["id"], users)
            organizations.append(row)
            logger.info("organization_created", slug=data["slug"])

        logger.info("seed_step_finished", step=self.name, organizations=len(organizations))
        return organizations

    def add_members(self, organization_id: uuid.UUID, users: list[dict]) -> int:
        """Skip the owner (users[0]) and add the rest with the fixed role ladder."""
        m = schema.organization_members
        added = 0
        for i in range(1, min(len(users), len(ORG_MEMBER_ROLES) + 1)):
            user = users[i]
            exists = self._first(sa.select(m.c.id).where(m.c.user_id == user["id"], m.c.organization_id == organization_id))
            if exists:
                continue
            ok = self._try_insert(
                m,
                {
                    "id": self._uuid(organization_id, user["id"]),
                    "role": ORG_MEMBER_ROLES[i - 1],
                    "joined_at": self.now,
                    "user_id": user["id"],
                    "organization_id": organization_id,
                    **self._audit(None),
                },
            )
            added += int(ok)
        return added

    def clear(self) -> int:
        self._delete_all(schema.status_transitions)
        self._delete_all(schema.task_statuses)
        self._delete_all(schema.workflows)
        self._delete_all(schema.organization_members)
        return self._delete_all(schema.organizations)
