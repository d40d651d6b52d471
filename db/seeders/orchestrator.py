from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from db import schema
from db.logging import logger, seeder_run
from db.seeders.admin import AdminSeeder
from db.seeders.base import _now
from db.seeders.inbox_rules import InboxRulesSeeder
from db.seeders.labels import LabelsSeeder
from db.seeders.organizations import OrganizationsSeeder
from db.seeders.projects import ProjectsSeeder
from db.seeders.sprints import SprintsSeeder
from db.seeders.task_comments import TaskCommentsSeeder
from db.seeders.task_dependencies import TaskDependenciesSeeder
from db.seeders.task_watchers import TaskWatchersSeeder
from db.seeders.tasks import TasksSeeder
from db.seeders.time_entries import TimeEntriesSeeder
from db.seeders.users import UsersSeeder
from db.seeders.workflows import TaskStatusesSeeder, WorkflowsSeeder
from db.seeders.workspaces import WorkspacesSeeder


class SeederService:
    """
    Runs the per-entity seeders in dependency order.

    Each public operation runs in its own transaction: a failing step rolls back the whole run.
    """

    def __init__(self, engine: Engine, seed_value: int = 1337, now: datetime | None = None) -> None:
        self.engine = engine
        self.seed_value = seed_value
        self.now = now or _now()

    def _run(self, op: str, fn: Callable[[Connection, random.Random], Any]) -> Any:
        rng = random.Random(self.seed_value)
        with seeder_run(op, self.seed_value):
            logger.info("seeder_started")
            try:
                with self.engine.begin() as conn:
                    result = fn(conn, rng)
            except Exception:
                logger.exception("seeder_failed")
                raise
            logger.info("seeder_finished", result=result)
        return result

    def seed_core(self) -> dict[str, int]:
        def run(conn: Connection, rng: random.Random) -> dict[str, int]:
            now = self.now
            users = UsersSeeder(conn, rng, now).seed()
            organizations = OrganizationsSeeder(conn, rng, now).seed(users)
            workflows = WorkflowsSeeder(conn, rng, now).seed(organizations)
            statuses = TaskStatusesSeeder(conn, rng, now).seed(workflows)
            workspaces = WorkspacesSeeder(conn, rng, now).seed(organizations, users)
            projects = ProjectsSeeder(conn, rng, now).seed(workspaces, users)
            inbox_rules = InboxRulesSeeder(conn, rng, now).seed_rules_for_all_inboxes()
            sprints = SprintsSeeder(conn, rng, now).seed(projects, users)
            tasks = TasksSeeder(conn, rng, now).seed(projects, users)
            labels = LabelsSeeder(conn, rng, now).seed(projects, users, tasks)
            # Downstream steps need at least one task; a re-run over seeded projects creates none.
            comments = dependencies = watchers = time_entries = []
            if tasks:
                comments = TaskCommentsSeeder(conn, rng, now).seed(tasks, users)
                dependencies = TaskDependenciesSeeder(conn, rng, now).seed(tasks, users)
                watchers = TaskWatchersSeeder(conn, rng, now).seed(tasks, users)
                time_entries = TimeEntriesSeeder(conn, rng, now).seed(tasks, users)
            return {
                "users": len(users),
                "organizations": len(organizations),
                "workflows": len(workflows),
                "task_statuses": len(statuses),
                "workspaces": len(workspaces),
                "projects": len(projects),
                "inbox_rules": inbox_rules["total_created"],
                "sprints": len(sprints),
                "tasks": len(tasks),
                "labels": len(labels),
                "task_comments": len(comments),
                "task_dependencies": len(dependencies),
                "task_watchers": len(watchers),
                "time_entries": len(time_entries),
            }

        return self._run("seed", run)

    def seed_admin(self) -> dict[str, Any]:
        def run(conn: Connection, rng: random.Random) -> dict[str, Any]:
            admin = AdminSeeder(conn, rng, self.now).seed()
            return {"admin_user": admin["email"] if admin else None}

        return self._run("admin", run)

    def seed_inbox_rules(self) -> dict[str, int]:
        return self._run("inbox_rules", lambda conn, rng: InboxRulesSeeder(conn, rng, self.now).seed_rules_for_all_inboxes())

    def clear_core(self) -> dict[str, int]:
        def run(conn: Connection, rng: random.Random) -> dict[str, int]:
            now = self.now
            # Reverse dependency order.
            steps = [
                TimeEntriesSeeder,
                TaskWatchersSeeder,
                TaskDependenciesSeeder,
                TaskCommentsSeeder,
                LabelsSeeder,
                SprintsSeeder,
                TasksSeeder,
                InboxRulesSeeder,
                ProjectsSeeder,
                WorkspacesSeeder,
                TaskStatusesSeeder,
                WorkflowsSeeder,
                OrganizationsSeeder,
                UsersSeeder,
                AdminSeeder,
            ]
            self._detach_inboxes(conn)
            return {cls.name: cls(conn, rng, now).clear() for cls in steps}

        return self._run("clear", run)

    @staticmethod
    def _detach_inboxes(conn: Connection) -> None:
        conn.execute(sa.delete(schema.inbox_rules))
        conn.execute(sa.delete(schema.project_inboxes))

    def reset(self) -> dict[str, dict]:
        cleared = self.clear_core()
        seeded = self.seed_core()
        return {"cleared": cleared, "seeded": seeded}
