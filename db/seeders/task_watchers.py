from __future__ import annotations

import random
import uuid

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


MAX_WATCHED_TASKS = 15
MIN_WATCHERS = 3
MAX_WATCHERS = 4

# (title keywords, user-profile keywords, how many to take)
INTEREST_RULES: list[tuple[tuple[str, ...], tuple[str, ...], int]] = [
    (("ui", "frontend", "dashboard", "component"), ("designer", "frontend", "ui"), 2),
    (("api", "backend", "database", "server"), ("backend", "api", "database"), 2),
    (("security", "authentication", "auth", "permission"), ("security", "devops"), 1),
    (("design", "ux", "mockup", "wireframe"), ("design", "ux"), 2),
    (("marketing", "campaign", "content", "social"), ("marketing", "content"), 1),
]


def users_matching(users: list[dict], keywords: tuple[str, ...]) -> list[dict]:
    def profile(u: dict) -> str:
        return f"{u['first_name']} {u['last_name']} {u.get('bio') or ''} {u['email']}".lower()

    return [u for u in users if any(k in profile(u) for k in keywords)]


def determine_watchers(task: dict, available: list[dict], rng: random.Random) -> list[dict]:
    """
    Pick watchers for a task from the available users.

    Users whose profile matches the task's area are taken first, then a manager for
    high-priority work or epics. The list is topped up at random to three and capped at four.
    """
    title = task["title"].lower()
    watchers: list[dict] = []

    for title_words, profile_words, take in INTEREST_RULES:
        if any(w in title for w in title_words):
            watchers.extend(users_matching(available, profile_words)[:take])
    if any(w in title for w in ("test", "qa")) or task["type"] == "BUG":
        watchers.extend(users_matching(available, ("qa", "test"))[:1])

    if task["priority"] in ("HIGH", "HIGHEST") or task["type"] == "EPIC":
        seen = {w["id"] for w in watchers}
        managers = [u for u in available if u["role"] in ("MANAGER", "SUPER_ADMIN") and u["id"] not in seen]
        watchers.extend(managers[:1])

    seen = {w["id"] for w in watchers}
    pool = [u for u in available if u["id"] not in seen]
    while len(watchers) < MIN_WATCHERS and pool:
        watchers.append(pool.pop(rng.randrange(len(pool))))

    unique = list({w["id"]: w for w in watchers}.values())
    return unique[:MAX_WATCHERS]


class TaskWatchersSeeder(BaseSeeder):
    name = "task_watchers"

    def _project_users(self, project_id: uuid.UUID) -> list[dict]:
        u, m = schema.users, schema.project_members
        return self._all(
            sa.select(u.c.id, u.c.first_name, u.c.last_name, u.c.bio, u.c.email, u.c.role)
            .join(m, m.c.user_id == u.c.id)
            .where(m.c.project_id == project_id)
            .order_by(u.c.email)
        )

    def seed(self, tasks: list[dict], users: list[dict]) -> list[dict]:
        if not tasks:
            raise ValueError("Tasks must be seeded before task watchers")
        if not users:
            raise ValueError("Users must be seeded before task watchers")

        logger.info("seed_step_started", step=self.name)
        created: list[dict] = []
        for task in tasks[::3][:MAX_WATCHED_TASKS]:
            available = self._project_users(task["project_id"]) or users[:4]
            creator_id = available[0]["id"]
            for watcher in determine_watchers(task, available, self.rng):
                row = {
                    "id": self._uuid(task["id"], watcher["id"]),
                    "task_id": task["id"],
                    "user_id": watcher["id"],
                    **self._audit(creator_id),
                }
                if self._try_insert(schema.task_watchers, row):
                    created.append(row)

        logger.info("seed_step_finished", step=self.name, watchers=len(created))
        return created

    def clear(self) -> int:
        return self._delete_all(schema.task_watchers)
