from __future__ import annotations

import copy

import sqlalchemy as sa

from db import schema
from db.defaults import DEFAULT_USER_PREFERENCES
from db.logging import logger
from db.security import hash_password
from db.seeders.base import BaseSeeder
from db.settings import SETTINGS


_AVATAR = "https://images.unsplash.com/photo-{}?w=150"

USERS_DATA: list[dict] = [
    {
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
    },
    {
        "email": "john.doe@taskpilot.com",
        "username": "johndoe",
        "first_name": "John",
        "last_name": "Doe",
        "role": "MEMBER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "Senior Frontend Developer specializing in React and TypeScript",
        "timezone": "America/New_York",
        "avatar": _AVATAR.format("1472099645785-5658abf4ff4e"),
    },
    {
        "email": "jane.smith@taskpilot.com",
        "username": "janesmith",
        "first_name": "Jane",
        "last_name": "Smith",
        "role": "MANAGER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "Product Manager with 8+ years of experience in agile development",
        "timezone": "America/Los_Angeles",
        "avatar": _AVATAR.format("1494790108755-2616b612b606"),
    },
    {
        "email": "mike.wilson@taskpilot.com",
        "username": "mikewilson",
        "first_name": "Mike",
        "last_name": "Wilson",
        "role": "MEMBER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "Backend Developer focused on Node.js, NestJS, and PostgreSQL",
        "timezone": "Europe/London",
        "avatar": _AVATAR.format("1507003211169-0a1dd7228f2d"),
    },
    {
        "email": "sarah.jones@taskpilot.com",
        "username": "sarahjones",
        "first_name": "Sarah",
        "last_name": "Jones",
        "role": "MEMBER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "UI/UX Designer passionate about creating intuitive user experiences",
        "timezone": "Australia/Sydney",
        "avatar": _AVATAR.format("1438761681033-6461ffad8d80"),
    },
    {
        "email": "alex.brown@taskpilot.com",
        "username": "alexbrown",
        "first_name": "Alex",
        "last_name": "Brown",
        "role": "MEMBER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "DevOps Engineer specializing in cloud infrastructure and automation",
        "timezone": "America/Chicago",
        "avatar": _AVATAR.format("1500648767791-00dcc994a43e"),
    },
    {
        "email": "emma.davis@taskpilot.com",
        "username": "emmadavis",
        "first_name": "Emma",
        "last_name": "Davis",
        "role": "VIEWER",
        "status": "ACTIVE",
        "email_verified": True,
        "bio": "QA Analyst ensuring quality across all product features",
        "timezone": "Europe/Berlin",
        "avatar": _AVATAR.format("1544005313-94ddf0286df2"),
    },
    {
        "email": "tom.garcia@taskpilot.com",
        "username": "tomgarcia",
        "first_name": "Tom",
        "last_name": "Garcia",
        "role": "MEMBER",
        "status": "PENDING",
        "email_verified": False,
        "bio": "Junior Developer eager to learn and contribute",
        "timezone": "America/Denver",
        "avatar": None,
    },
]


class UsersSeeder(BaseSeeder):
    name = "users"

    def build_row(self, data: dict, index: int, password_hash: str) -> dict:
        return {
            "id": self._uuid(data["email"]),
            **data,
            "language": "en",
            "mobile_number": f"+1{index + 1:010d}",
            "password": password_hash,
            "preferences": copy.deepcopy(DEFAULT_USER_PREFERENCES),
            "created_at": self.now,
            "updated_at": self.now,
        }

    def seed(self, users_data: list[dict] | None = None) -> list[dict]:
        logger.info("seed_step_started", step=self.name)
        password_hash = hash_password(SETTINGS.default_password, SETTINGS.bcrypt_rounds)

        users: list[dict] = []
        for i, data in enumerate(users_data or USERS_DATA):
            row = self.build_row(data, i, password_hash)
            if self._try_insert(schema.users, row):
                users.append(row)
                continue
            existing = self._first(sa.select(schema.users).where(schema.users.c.email == data["email"]))
            if existing:
                users.append(existing)

        logger.info("seed_step_finished", step=self.name, users=len(users))
        return users

    def clear(self) -> int:
        return self._delete_all(schema.users)
