from __future__ import annotations

import uuid

import sqlalchemy as sa

from db import schema
from db.defaults import build_default_workflow_rows, transition_name
from db.logging import logger
from db.seeders.base import BaseSeeder


WORKFLOW_TEMPLATES: list[dict] = [
    {
        "name": "Software Development Workflow",
        "description": "Standard workflow for software development projects with code review and testing phases",
    },
    {
        "name": "Design & Creative Workflow",
        "description": "Workflow optimized for design and creative projects with review and approval stages",
    },
    {
        "name": "Marketing Campaign Workflow",
        "description": "Workflow for marketing campaigns from ideation to publication",
    },
    {
        "name": "Client Project Workflow",
        "description": "Workflow for client projects with client review and approval stages",
    },
    {
        "name": "Support & Maintenance Workflow",
        "description": "Simple workflow for support tickets and maintenance tasks",
    },
]

# (workflow name fragment, [(status name, color, category)]); first status is the default.
WORKFLOW_STATUSES: list[tuple[str, list[tuple[str, str, str]]]] = [
    (
        "Software Development",
        [
            ("Backlog", "#6b7280", "TODO"),
            ("In Development", "#f59e0b", "IN_PROGRESS"),
            ("Testing", "#ec4899", "IN_PROGRESS"),
            ("Done", "#10b981", "DONE"),
        ],
    ),
    (
        "Design & Creative",
        [
            ("Brief Received", "#6b7280", "TODO"),
            ("In Design", "#8b5cf6", "IN_PROGRESS"),
            ("Review", "#f59e0b", "IN_PROGRESS"),
            ("Delivered", "#10b981", "DONE"),
        ],
    ),
    (
        "Marketing Campaign",
        [
            ("Ideas", "#6b7280", "TODO"),
            ("In Progress", "#f59e0b", "IN_PROGRESS"),
            ("Published", "#10b981", "DONE"),
        ],
    ),
    (
        "Client Project",
        [
            ("New Request", "#6b7280", "TODO"),
            ("In Progress", "#f59e0b", "IN_PROGRESS"),
            ("Completed", "#10b981", "DONE"),
        ],
    ),
    (
        "Support & Maintenance",
        [
            ("Open", "#ef4444", "TODO"),
            ("In Progress", "#f59e0b", "IN_PROGRESS"),
            ("Resolved", "#10b981", "DONE"),
        ],
    ),
]


def workflow_templates_for(org_name: str) -> list[dict]:
    name = org_name.lower()
    if "startup" in name or "tech" in name:
        return WORKFLOW_TEMPLATES[:3]
    if "agency" in name or "creative" in name:
        return WORKFLOW_TEMPLATES[1:4]
    return list(WORKFLOW_TEMPLATES)


def statuses_for_workflow(workflow_name: str) -> list[dict]:
    for fragment, statuses in WORKFLOW_STATUSES:
        if fragment in workflow_name:
            return [
                {"name": n, "color": c, "category": cat, "position": i + 1, "is_default": i == 0}
                for i, (n, c, cat) in enumerate(statuses)
            ]
    return []


def linear_transitions(statuses: list[dict]) -> list[tuple[dict, dict]]:
    """
    Forward moves between neighbours, plus backward moves except DONE straight back to TODO.

    `statuses` must be ordered by position.
    """
    pairs = [(statuses[i], statuses[i + 1]) for i in range(len(statuses) - 1)]
    for i in range(1, len(statuses)):
        if statuses[i]["category"] == "DONE" and statuses[i - 1]["category"] == "TODO":
            continue
        pairs.append((statuses[i], statuses[i - 1]))
    return pairs


class WorkflowsSeeder(BaseSeeder):
    name = "workflows"

    def create_default(self, organization_id: uuid.UUID, actor_id: uuid.UUID | None) -> dict:
        """Create the default workflow with its statuses and transitions for a new organization."""
        workflow, statuses, transitions = build_default_workflow_rows(
            organization_id,
            actor_id,
            self.now,
            id_factory=lambda: uuid.UUID(int=self.rng.getrandbits(128), version=4),
        )
        self.conn.execute(sa.insert(schema.workflows).values(**workflow))
        self._insert_many(schema.task_statuses, statuses)
        self._insert_many(schema.status_transitions, transitions)
        return workflow

    def default_for(self, organization_id: uuid.UUID) -> dict | None:
        w = schema.workflows
        return self._first(
            sa.select(w)
            .where(w.c.organization_id == organization_id)
            .order_by(w.c.is_default.desc(), w.c.created_at)
            .limit(1)
        )

    def seed(self, organizations: list[dict]) -> list[dict]:
        if not organizations:
            raise ValueError("Organizations must be seeded before workflows")

        logger.info("seed_step_started", step=self.name)
        w = schema.workflows
        workflows: list[dict] = []
        for org in organizations:
            for template in workflow_templates_for(org["name"]):
                existing = self._first(
                    sa.select(w).where(w.c.organization_id == org["id"], w.c.name == template["name"])
                )
                if existing:
                    workflows.append(existing)
                    continue
                row = {
                    "id": self._uuid(org["id"], template["name"]),
                    "name": template["name"],
                    "description": template["description"],
                    # The org already carries a default workflow from its creation.
                    "is_default": False,
                    "organization_id": org["id"],
                    **self._audit(org["owner_id"]),
                }
                if self._try_insert(w, row):
                    workflows.append(row)

        logger.info("seed_step_finished", step=self.name, workflows=len(workflows))
        return workflows

    def clear(self) -> int:
        self._delete_all(schema.status_transitions)
        self._delete_all(schema.task_statuses)
        return self._delete_all(schema.workflows)


class TaskStatusesSeeder(BaseSeeder):
    name = "task_statuses"

    def seed(self, workflows: list[dict]) -> list[dict]:
        if not workflows:
            raise ValueError("Workflows must be seeded before task statuses")

        logger.info("seed_step_started", step=self.name)
        ts = schema.task_statuses
        created: list[dict] = []
        for workflow in workflows:
            statuses_data = statuses_for_workflow(workflow["name"])
            if not statuses_data:
                logger.warning("workflow_without_statuses", workflow=workflow["name"])
                continue
            for data in statuses_data:
                row = {
                    "id": self._uuid(workflow["id"], data["name"]),
                    **data,
                    "workflow_id": workflow["id"],
                    **self._audit(workflow["created_by_id"]),
                }
                if self._try_insert(ts, row):
                    created.append(row)
                    continue
                existing = self._first(sa.select(ts).where(ts.c.workflow_id == workflow["id"], ts.c.name == data["name"]))
                if existing:
                    created.append(existing)
            self._create_transitions(workflow)

        logger.info("seed_step_finished", step=self.name, statuses=len(created))
        return created

    def _create_transitions(self, workflow: dict) -> None:
        ts = schema.task_statuses
        statuses = self._all(sa.select(ts).where(ts.c.workflow_id == workflow["id"]).order_by(ts.c.position))
        for from_status, to_status in linear_transitions(statuses):
            self._try_insert(
                schema.status_transitions,
                {
                    "id": self._uuid(workflow["id"], from_status["id"], to_status["id"]),
                    "name": transition_name(from_status["name"], to_status["name"]),
                    "workflow_id": workflow["id"],
                    "from_status_id": from_status["id"],
                    "to_status_id": to_status["id"],
                    **self._audit(workflow["created_by_id"]),
                },
            )

    def clear(self) -> int:
        self._delete_all(schema.status_transitions)
        return self._delete_all(schema.task_statuses)
