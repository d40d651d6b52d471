from __future__ import annotations

import math
import random
import uuid
from datetime import datetime, timedelta

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


LOGGED_TASK_SHARE = 0.6
WORK_DAY_WINDOW = 7
MIN_SESSION = 30

DEFAULT_ESTIMATES = {"EPIC": 2400, "STORY": 480, "BUG": 180, "SUBTASK": 120}
SESSION_CAPS = {"BUG": 120, "EPIC": 480}

DESCRIPTIONS = [
    "Initial research and planning",
    "Implementation work",
    "Code review and refactoring",
    "Testing and debugging",
    "Documentation updates",
    "Final testing and cleanup",
    "Investigating the issue",
    "Reproducing the bug",
    "Implementing the fix",
    "Testing the fix",
    "Designing the solution",
    "Implementing core functionality",
    "Adding error handling",
    "Integration with existing code",
    "User interface adjustments",
]

KEYWORD_DESCRIPTIONS: list[tuple[tuple[str, ...], str]] = [
    (("auth",), "Working on authentication logic"),
    (("ui", "dashboard"), "UI development and styling"),
    (("api",), "API endpoint development"),
    (("database",), "Database schema and queries"),
    (("test",), "Writing and running tests"),
]


def default_estimate(task_type: str) -> int:
    return DEFAULT_ESTIMATES.get(task_type, 360)


def work_days(now: datetime, count: int = WORK_DAY_WINDOW) -> list[datetime]:
    """Weekdays among the last `count` calendar days, oldest first."""
    days = [now - timedelta(days=i) for i in range(count - 1, -1, -1)]
    return [d for d in days if d.weekday() < 5]


def session_minutes(remaining: int, task_type: str, rng: random.Random) -> int:
    cap = SESSION_CAPS.get(task_type, 240)
    return min(remaining, rng.randrange(MIN_SESSION, cap))


def entry_description(title: str, session_index: int, rng: random.Random) -> str:
    lowered = title.lower()
    options = DESCRIPTIONS + [text for words, text in KEYWORD_DESCRIPTIONS if any(w in lowered for w in words)]
    if session_index < len(options):
        return options[session_index]
    return rng.choice(options)


def plan_time_entries(task: dict, user_ids: list[uuid.UUID], now: datetime, rng: random.Random) -> list[dict]:
    """
    Spread 70-130% of a task's estimate over recent weekdays.

    One user logs time per day in 1-3 sessions; sessions start between 9:00 and 16:59.
    """
    estimate = task.get("original_estimate") or default_estimate(task["type"])
    remaining = math.floor(estimate * (0.7 + rng.random() * 0.6))

    entries: list[dict] = []
    for day in work_days(now):
        if remaining <= 0:
            break
        user_id = rng.choice(user_ids)
        sessions = min(rng.randint(1, 3), math.ceil(remaining / 120))
        for i in range(sessions):
            if remaining <= 0:
                break
            minutes = session_minutes(remaining, task["type"], rng)
            start = day.replace(hour=9 + rng.randrange(8), minute=rng.randrange(60), second=0, microsecond=0)
            entries.append(
                {
                    "description": entry_description(task["title"], i, rng),
                    "time_spent": minutes,
                    "start_time": start,
                    "end_time": start + timedelta(minutes=minutes),
                    "date": day.replace(hour=0, minute=0, second=0, microsecond=0),
                    "user_id": user_id,
                }
            )
            remaining -= minutes
    return entries


class TimeEntriesSeeder(BaseSeeder):
    name = "time_entries"

    def _member_ids(self, project_id: uuid.UUID) -> list[uuid.UUID]:
        m = schema.project_members
        return [r["user_id"] for r in self._all(sa.select(m.c.user_id).where(m.c.project_id == project_id).order_by(m.c.user_id))]

    def seed(self, tasks: list[dict], users: list[dict]) -> list[dict]:
        if not tasks:
            raise ValueError("Tasks must be seeded before time entries")
        if not users:
            raise ValueError("Users must be seeded before time entries")

        logger.info("seed_step_started", step=self.name)
        created: list[dict] = []
        for task in (t for t in tasks if self.rng.random() < LOGGED_TASK_SHARE):
            user_ids = self._member_ids(task["project_id"]) or [u["id"] for u in users[:4]]
            for n, entry in enumerate(plan_time_entries(task, user_ids, self.now, self.rng)):
                row = {"id": self._uuid(task["id"], n), **entry, "task_id": task["id"], **self._audit(entry["user_id"])}
                if self._try_insert(schema.time_entries, row):
                    created.append(row)

        logger.info("seed_step_finished", step=self.name, time_entries=len(created))
        return created

    def clear(self) -> int:
        return self._delete_all(schema.time_entries)
