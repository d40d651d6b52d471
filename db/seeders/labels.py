from __future__ import annotations

import uuid

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


# (name, color, description)
COMMON_LABELS = [
    ("urgent", "#ef4444", "Requires immediate attention"),
    ("blocked", "#dc2626", "Cannot proceed due to external dependencies"),
    ("needs-review", "#f59e0b", "Ready for code or design review"),
    ("documentation", "#6366f1", "Documentation related tasks"),
    ("enhancement", "#10b981", "Feature enhancement or improvement"),
]

PROJECT_LABELS: list[tuple[tuple[str, ...], list[tuple[str, str, str]]]] = [
    (
        ("Web Application", "Backend API"),
        [
            ("frontend", "#3b82f6", "Frontend development tasks"),
            ("backend", "#8b5cf6", "Backend development tasks"),
            ("api", "#06b6d4", "API related development"),
            ("database", "#84cc16", "Database schema or query related"),
            ("security", "#ef4444", "Security related tasks"),
            ("performance", "#f97316", "Performance optimization tasks"),
            ("testing", "#8b5cf6", "Testing and QA tasks"),
            ("deployment", "#059669", "Deployment and DevOps tasks"),
        ],
    ),
    (
        ("Design", "UI"),
        [
            ("ui-component", "#ec4899", "UI component design tasks"),
            ("ux-research", "#8b5cf6", "User experience research"),
            ("prototyping", "#06b6d4", "Prototyping and wireframing"),
            ("accessibility", "#10b981", "Accessibility improvements"),
            ("design-system", "#f59e0b", "Design system related tasks"),
            ("branding", "#ef4444", "Brand and visual identity tasks"),
        ],
    ),
    (
        ("Marketing",),
        [
            ("content", "#8b5cf6", "Content creation and marketing materials"),
            ("social-media", "#06b6d4", "Social media campaigns and posts"),
            ("email-campaign", "#10b981", "Email marketing campaigns"),
            ("analytics", "#f59e0b", "Marketing analytics and reporting"),
            ("seo", "#84cc16", "Search engine optimization"),
            ("paid-ads", "#ef4444", "Paid advertising campaigns"),
        ],
    ),
    (
        ("E-commerce", "Mobile App"),
        [
            ("mobile", "#06b6d4", "Mobile-specific features and fixes"),
            ("payment", "#10b981", "Payment processing and integration"),
            ("inventory", "#f59e0b", "Inventory management features"),
            ("user-experience", "#ec4899", "User experience improvements"),
            ("integration", "#8b5cf6", "Third-party service integrations"),
        ],
    ),
]

FALLBACK_LABELS = [
    ("feature", "#3b82f6", "New feature development"),
    ("bugfix", "#ef4444", "Bug fix tasks"),
    ("refactoring", "#8b5cf6", "Code refactoring and cleanup"),
    ("research", "#06b6d4", "Research and investigation tasks"),
]

# Title keywords that pull a label onto a task.
LABEL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "urgent": ("fix", "bug"),
    "documentation": ("document", "documentation", "swagger", "guidelines"),
    "enhancement": ("optimization", "improve", "dark mode", "caching"),
    "frontend": ("dashboard", "layout", "ui", "dark mode", "profile"),
    "backend": ("api", "database", "endpoint", "nestjs", "middleware"),
    "api": ("api", "swagger", "crud", "endpoint", "rate limiting"),
    "database": ("database", "schema", "connection pool"),
    "security": ("auth", "jwt", "security", "rate limiting", "validation"),
    "performance": ("performance", "optimization", "caching", "lazy"),
    "testing": ("test", "qa", "quality"),
    "deployment": ("deploy", "infrastructure", "ci/cd", "environment"),
    "ui-component": ("component", "button", "input", "modal", "navigation"),
    "ux-research": ("research", "user flow"),
    "design-system": ("palette", "typography", "component", "guidelines"),
    "accessibility": ("accessibility", "overlay"),
    "content": ("content", "copy", "messaging"),
    "social-media": ("social",),
    "email-campaign": ("email",),
    "analytics": ("analytics", "audience"),
    "feature": ("implement", "core functionality"),
    "research": ("research", "requirements"),
    "bugfix": ("fix", "bug"),
}

MAX_LABELS_PER_TASK = 3


def labels_for_project(project_name: str) -> list[dict]:
    specific = FALLBACK_LABELS
    for markers, labels in PROJECT_LABELS:
        if any(m in project_name for m in markers):
            specific = labels
            break
    return [{"name": n, "color": c, "description": d} for n, c, d in COMMON_LABELS + specific]


def match_labels(title: str, available: list[str]) -> list[str]:
    """Labels (from `available`, in order) whose keywords appear in the title, at most three."""
    lowered = title.lower()
    matched = [name for name in available if any(k in lowered for k in LABEL_KEYWORDS.get(name, ()))]
    return matched[:MAX_LABELS_PER_TASK]


class LabelsSeeder(BaseSeeder):
    name = "labels"

    def _creator_id(self, project_id: uuid.UUID, users: list[dict]) -> uuid.UUID:
        m = schema.project_members
        row = self._first(
            sa.select(m.c.user_id).where(m.c.project_id == project_id, m.c.role == "OWNER").limit(1)
        )
        return row["user_id"] if row else users[0]["id"]

    def seed(self, projects: list[dict], users: list[dict], tasks: list[dict] | None = None) -> list[dict]:
        if not projects:
            raise ValueError("Projects must be seeded before labels")
        if not users:
            raise ValueError("Users must be seeded before labels")

        logger.info("seed_step_started", step=self.name)
        lbl = schema.labels
        created: list[dict] = []
        by_project: dict[uuid.UUID, dict[str, uuid.UUID]] = {}
        for project in projects:
            creator_id = self._creator_id(project["id"], users)
            for data in labels_for_project(project["name"]):
                row = {"id": self._uuid(project["id"], data["name"]), **data, "project_id": project["id"], **self._audit(creator_id)}
                if not self._try_insert(lbl, row):
                    row = self._first(sa.select(lbl).where(lbl.c.project_id == project["id"], lbl.c.name == data["name"]))
                    if row is None:
                        continue
                created.append(row)
                by_project.setdefault(project["id"], {})[row["name"]] = row["id"]

        assigned = self._assign(tasks or [], by_project)
        logger.info("seed_step_finished", step=self.name, labels=len(created), task_labels=assigned)
        return created

    def _assign(self, tasks: list[dict], by_project: dict[uuid.UUID, dict[str, uuid.UUID]]) -> int:
        assigned = 0
        for task in tasks:
            project_labels = by_project.get(task["project_id"], {})
            for name in match_labels(task["title"], list(project_labels)):
                assigned += int(
                    self._try_insert(
                        schema.task_labels,
                        {"task_id": task["id"], "label_id": project_labels[name], **self._audit(task.get("reporter_id"))},
                    )
                )
        return assigned

    def clear(self) -> int:
        self._delete_all(schema.task_labels)
        return self._delete_all(schema.labels)
