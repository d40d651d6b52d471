from __future__ import annotations

import uuid
from collections import defaultdict

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


def _has_any(text: str, *words: str) -> bool:
    return any(w in text for w in words)


def should_create_dependency(dependent: dict, blocking: dict) -> bool:
    """Title/type heuristics deciding whether `dependent` plausibly waits on `blocking`."""
    d = dependent["title"].lower()
    b = blocking["title"].lower()

    if _has_any(d, "authentication", "login", "auth") and _has_any(b, "setup", "environment", "structure", "foundation"):
        return True
    if _has_any(d, "dashboard", "ui", "frontend") and _has_any(b, "api", "backend", "authentication", "database"):
        return True
    if _has_any(d, "test", "qa") and _has_any(b, "implement", "create", "build"):
        return True
    if "component" in d and "button" not in d and _has_any(b, "button", "color", "typography", "design system"):
        return True
    if _has_any(d, "deploy", "release") and _has_any(b, "implement", "test", "bug"):
        return True
    if _has_any(d, "crud", "management") and _has_any(b, "schema", "database", "model"):
        return True

    if dependent["type"] == "EPIC":
        return False
    if dependent["type"] == "SUBTASK" and blocking["type"] == "STORY":
        return True
    if dependent["type"] == "BUG" and "implement" in b and "fix" in d:
        return True
    return False


def dependency_type(dependent: dict, blocking: dict) -> str:
    if dependent["type"] == "SUBTASK" and blocking["type"] == "STORY":
        return "FINISH_START"
    if "integration" in dependent["title"].lower() or "api" in blocking["title"].lower():
        return "FINISH_START"
    if _has_any(dependent["title"].lower(), "test", "qa"):
        return "FINISH_START"
    return "BLOCKS"


def plan_dependencies(tasks: list[dict]) -> list[dict]:
    """Candidate (dependent, blocking, type) rows for one project, capped at half the task count."""
    ordered = sorted(tasks, key=lambda t: (t.get("created_at"), t.get("task_number", 0)))
    planned: list[dict] = []
    for i, current in enumerate(ordered):
        for blocker in ordered[:i]:
            if should_create_dependency(current, blocker):
                planned.append(
                    {
                        "dependent_task_id": current["id"],
                        "blocking_task_id": blocker["id"],
                        "type": dependency_type(current, blocker),
                    }
                )
    return planned[: len(tasks) // 2]


class TaskDependenciesSeeder(BaseSeeder):
    name = "task_dependencies"

    def seed(self, tasks: list[dict], users: list[dict]) -> list[dict]:
        if not tasks:
            raise ValueError("Tasks must be seeded before task dependencies")
        if not users:
            raise ValueError("Users must be seeded before task dependencies")

        logger.info("seed_step_started", step=self.name)
        by_project: dict[uuid.UUID, list[dict]] = defaultdict(list)
        for task in tasks:
            by_project[task["project_id"]].append(task)

        creator_id = users[0]["id"]
        created: list[dict] = []
        for project_tasks in by_project.values():
            if len(project_tasks) < 2:
                continue
            for dep in plan_dependencies(project_tasks):
                row = {
                    "id": self._uuid(dep["dependent_task_id"], dep["blocking_task_id"]),
                    **dep,
                    **self._audit(creator_id),
                }
                if self._try_insert(schema.task_dependencies, row):
                    created.append(row)

        logger.info("seed_step_finished", step=self.name, dependencies=len(created))
        return created

    def clear(self) -> int:
        return self._delete_all(schema.task_dependencies)
