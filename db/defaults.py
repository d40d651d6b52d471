from __future__ import annotations

import uuid
from datetime import datetime


DEFAULT_WORKFLOW = {
    "name": "Default Workflow",
    "description": "Standard workflow for task management",
}

DEFAULT_TASK_STATUSES = [
    {"name": "To Do", "color": "#6b7280", "category": "TODO", "position": 0, "is_default": True},
    {"name": "In Progress", "color": "#3b82f6", "category": "IN_PROGRESS", "position": 1, "is_default": False},
    {"name": "Review", "color": "#f59e0b", "category": "IN_PROGRESS", "position": 2, "is_default": False},
    {"name": "Done", "color": "#10b981", "category": "DONE", "position": 3, "is_default": False},
]

DEFAULT_STATUS_TRANSITIONS = [
    ("To Do", "In Progress"),
    ("In Progress", "Review"),
    ("Review", "Done"),
    ("In Progress", "To Do"),
    ("Review", "In Progress"),
    ("Done", "Review"),
]

DEFAULT_SPRINT = {
    "name": "Default Sprint",
    "goal": "Backlog for tasks not yet planned into a sprint",
    "status": "PLANNING",
    "is_default": True,
}

DEFAULT_ORG_SETTINGS = {
    "allowPublicSignup": False,
    "defaultUserRole": "MEMBER",
    "requireEmailVerification": True,
    "enableTimeTracking": True,
    "enableAutomation": True,
    "workingDays": ["monday", "tuesday", "wednesday", "thursday", "friday"],
    "workingHours": {"start": "09:00", "end": "17:00"},
    "timezone": "UTC",
}

DEFAULT_USER_PREFERENCES = {
    "theme": "light",
    "notifications": {"email": True, "push": True, "desktop": True},
    "dashboard": {"showCompletedTasks": False, "defaultView": "list"},
}


def transition_name(from_name: str, to_name: str) -> str:
    return f"{from_name} → {to_name}"


def build_transition_rows(
    workflow_id: uuid.UUID,
    statuses: list[dict],
    transitions: list[tuple[str, str]],
    actor_id: uuid.UUID | None,
    now: datetime,
    *,
    id_factory=uuid.uuid4,
) -> list[dict]:
    """
    Resolve (from, to) status-name pairs against persisted statuses.

    Pairs naming an unknown status are dropped rather than failing the whole workflow.
    """
    by_name = {s["name"]: s["id"] for s in statuses}
    rows: list[dict] = []
    for from_name, to_name in transitions:
        if from_name not in by_name or to_name not in by_name:
            continue
        rows.append(
            {
                "id": id_factory(),
                "name": transition_name(from_name, to_name),
                "workflow_id": workflow_id,
                "from_status_id": by_name[from_name],
                "to_status_id": by_name[to_name],
                "created_by_id": actor_id,
                "updated_by_id": actor_id,
                "created_at": now,
                "updated_at": now,
            }
        )
    return rows


def build_default_workflow_rows(
    organization_id: uuid.UUID,
    actor_id: uuid.UUID | None,
    now: datetime,
    *,
    id_factory=uuid.uuid4,
) -> tuple[dict, list[dict], list[dict]]:
    """Rows for an organization's default workflow: (workflow, statuses, transitions)."""
    workflow_id = id_factory()
    workflow = {
        "id": workflow_id,
        "name": DEFAULT_WORKFLOW["name"],
        "description": DEFAULT_WORKFLOW["description"],
        "is_default": True,
        "organization_id": organization_id,
        "created_by_id": actor_id,
        "updated_by_id": actor_id,
        "created_at": now,
        "updated_at": now,
    }
    statuses = [
        {
            "id": id_factory(),
            **s,
            "workflow_id": workflow_id,
            "created_by_id": actor_id,
            "updated_by_id": actor_id,
            "created_at": now,
            "updated_at": now,
        }
        for s in DEFAULT_TASK_STATUSES
    ]
    transitions = build_transition_rows(
        workflow_id, statuses, DEFAULT_STATUS_TRANSITIONS, actor_id, now, id_factory=id_factory
    )
    return workflow, statuses, transitions
