from __future__ import annotations

from datetime import datetime, timedelta

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


SCRUM_PROJECT_MARKERS = ["Web Application", "Backend API", "E-commerce Platform", "Mobile App"]

# (name, goal, status, start offset, end offset); offsets in weeks relative to now.
SPRINT_PLANS: list[tuple[str, list[tuple[str, str, str, int, int]]]] = [
    (
        "Web Application",
        [
            ("Sprint 1: Foundation Setup", "Set up development environment, authentication, and basic project structure", "COMPLETED", -8, -6),
            ("Sprint 2: User Management", "Implement user registration, profile management, and authorization", "COMPLETED", -6, -4),
            ("Sprint 3: Dashboard & Navigation", "Build responsive dashboard layout and navigation components", "ACTIVE", -2, 0),
            ("Sprint 4: Task Management Core", "Implement task creation, editing, and basic task management features", "PLANNING", 0, 2),
            ("Sprint 5: Advanced Features", "Add task dependencies, attachments, and advanced filtering", "PLANNING", 2, 4),
        ],
    ),
    (
        "Backend API",
        [
            ("Sprint 1: API Foundation", "Set up NestJS structure, database connection, and basic CRUD operations", "COMPLETED", -6, -4),
            ("Sprint 2: Authentication & Security", "Implement JWT authentication, rate limiting, and security middleware", "ACTIVE", -2, 0),
            ("Sprint 3: Task API Endpoints", "Build comprehensive task management API with all CRUD operations", "PLANNING", 0, 2),
        ],
    ),
    (
        "E-commerce Platform",
        [
            ("Sprint 1: Project Setup", "Initialize project, set up development environment and basic structure", "COMPLETED", -4, -2),
            ("Sprint 2: Product Catalog", "Build product listing, search, and filtering functionality", "ACTIVE", -2, 0),
            ("Sprint 3: Shopping Cart & Checkout", "Implement shopping cart functionality and checkout process", "PLANNING", 0, 2),
        ],
    ),
    (
        "Mobile App",
        [
            ("Sprint 1: App Foundation", "Set up React Native project, navigation, and basic screens", "PLANNING", 1, 3),
            ("Sprint 2: Core Features", "Implement main app functionality and user authentication", "PLANNING", 3, 5),
        ],
    ),
]

DEFAULT_SPRINT_PLAN: list[tuple[str, str, str, int, int]] = [
    ("Sprint 1: Planning & Setup", "Project planning, requirement analysis, and initial setup", "COMPLETED", -2, 0),
    ("Sprint 2: Core Development", "Implement core functionality and features", "PLANNING", 0, 2),
]


def is_scrum_project(project_name: str) -> bool:
    return any(marker in project_name for marker in SCRUM_PROJECT_MARKERS)


def sprint_plan_for(project_name: str, now: datetime) -> list[dict]:
    plan = DEFAULT_SPRINT_PLAN
    for marker, sprints in SPRINT_PLANS:
        if marker in project_name:
            plan = sprints
            break
    return [
        {
            "name": name,
            "goal": goal,
            "status": status,
            "start_date": now + timedelta(weeks=start),
            "end_date": now + timedelta(weeks=end),
            "is_default": False,
        }
        for name, goal, status, start, end in plan
    ]


class SprintsSeeder(BaseSeeder):
    name = "sprints"

    def seed(self, projects: list[dict], users: list[dict]) -> list[dict]:
        if not projects:
            raise ValueError("Projects must be seeded before sprints")
        if not users:
            raise ValueError("Users must be seeded before sprints")

        logger.info("seed_step_started", step=self.name)
        s = schema.sprints
        created: list[dict] = []
        for project in (p for p in projects if is_scrum_project(p["name"])):
            creator_id = project.get("created_by_id") or users[0]["id"]
            for data in sprint_plan_for(project["name"], self.now):
                existing = self._first(sa.select(s).where(s.c.project_id == project["id"], s.c.name == data["name"]))
                if existing:
                    created.append(existing)
                    continue
                row = {"id": self._uuid(project["id"], data["name"]), **data, "project_id": project["id"], **self._audit(creator_id)}
                if self._try_insert(s, row):
                    created.append(row)

        logger.info("seed_step_finished", step=self.name, sprints=len(created))
        return created

    def clear(self) -> int:
        self.conn.execute(sa.update(schema.tasks).where(schema.tasks.c.sprint_id.is_not(None)).values(sprint_id=None))
        return self._delete_all(schema.sprints)
