from __future__ import annotations

import copy

import sqlalchemy as sa

from db import schema
from db.defaults import DEFAULT_ORG_SETTINGS
from db.logging import logger
from db.security import hash_password
from db.seeders.base import BaseSeeder
from db.seeders.users import UsersSeeder
from db.seeders.workflows import WorkflowsSeeder
from db.settings import SETTINGS


ADMIN_USER = {
    "email": "admin@taskpilot.com",
    "username": "admin",
    "first_name": "Admin",
    "last_name": "User",
    "role": "SUPER_ADMIN",
    "status": "ACTIVE",
    "email_verified": True,
    "bio": "System administrator with full access to all features",
    "timezone": "UTC",
    "avatar": None,
}

DEFAULT_ORGANIZATION = {
    "name": "Default Organization",
    "slug": "default-organization",
    "description": "This is the default organization for admin user",
    "website": "https://example.com",
    "avatar": "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=150",
}


class AdminSeeder(BaseSeeder):
    """Bootstrap a fresh install: one super admin and an organization with the default workflow."""

    name = "admin"

    def seed(self) -> dict | None:
        logger.info("seed_step_started", step=self.name)
        users = UsersSeeder(self.conn, self.rng, self.now)
        row = users.build_row(ADMIN_USER, 0, hash_password(SETTINGS.default_password, SETTINGS.bcrypt_rounds))

        admin = row if self._try_insert(schema.users, row) else None
        if admin is None:
            admin = self._first(sa.select(schema.users).where(schema.users.c.email == ADMIN_USER["email"]))
        if admin is None:
            return None

        org = self._seed_default_organization(admin)
        logger.info("seed_step_finished", step=self.name, admin=admin["email"], organization=org["slug"])
        return admin

    def _seed_default_organization(self, admin: dict) -> dict:
        o = schema.organizations
        existing = self._first(sa.select(o).where(o.c.slug == DEFAULT_ORGANIZATION["slug"]))
        if existing:
            logger.info("organization_exists", slug=existing["slug"])
            return existing

        row = {
            "id": self._uuid(DEFAULT_ORGANIZATION["slug"]),
            **DEFAULT_ORGANIZATION,
            "settings": copy.deepcopy(DEFAULT_ORG_SETTINGS),
            "owner_id": admin["id"],
            **self._audit(admin["id"]),
        }
        self.conn.execute(sa.insert(o).values(**row))
        WorkflowsSeeder(self.conn, self.rng, self.now).create_default(row["id"], admin["id"])
        logger.info("organization_created", slug=row["slug"])
        return row

    def clear(self) -> int:
        self._delete_all(schema.status_transitions)
        self._delete_all(schema.task_statuses)
        self._delete_all(schema.workflows)
        self._delete_all(schema.organization_members)
        self._delete_all(schema.organizations)
        return self._delete_all(schema.users, schema.users.c.role == "SUPER_ADMIN")
