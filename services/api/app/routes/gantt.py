from __future__ import annotations

import uuid
from collections import defaultdict

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app import gantt
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, get_or_404
from services.api.app.errors import InvalidRequestError
from services.api.app.logging import logger
from services.api.app.routes.tasks import load_task
from services.api.app.schemas import GanttData, RescheduleRequest, ResourceAllocation, TaskOut


router = APIRouter(tags=["gantt"])


async def _gantt_tasks(session: AsyncSession, where: list) -> tuple[list[dict], list[dict]]:
    """Flat Gantt task dicts for the selected tasks, plus the dependencies between them."""
    t, st, a, u, td = schema.tasks, schema.task_statuses, schema.task_assignees, schema.users, schema.task_dependencies
    rows = await fetch_all(
        session,
        sa.select(t, st.c.name.label("status_name"), st.c.color.label("status_color"))
        .join(st, st.c.id == t.c.status_id)
        .where(*where)
        .order_by(t.c.start_date.nulls_last(), t.c.task_number),
    )
    ids = [r["id"] for r in rows]
    if not ids:
        return [], []

    assignees: dict[uuid.UUID, list[dict]] = defaultdict(list)
    for r in await fetch_all(
        session,
        sa.select(a.c.task_id, u.c.id, u.c.first_name, u.c.last_name, u.c.email, u.c.avatar)
        .join(u, u.c.id == a.c.user_id)
        .where(a.c.task_id.in_(ids))
        .order_by(a.c.created_at),
    ):
        assignees[r.pop("task_id")].append(r)

    deps = await fetch_all(
        session, sa.select(td).where(td.c.dependent_task_id.in_(ids), td.c.blocking_task_id.in_(ids))
    )
    blocked_by: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for d in deps:
        blocked_by[d["dependent_task_id"]].append(d["blocking_task_id"])

    tasks = [
        {
            "id": r["id"],
            "title": r["title"],
            "start": r["start_date"],
            "end": r["due_date"],
            "progress": gantt.task_progress(r["status_name"]),
            "dependencies": blocked_by.get(r["id"], []),
            "assignees": assignees.get(r["id"], []),
            "priority": r["priority"],
            "status": {"name": r["status_name"], "color": r["status_color"]},
            "type": r["type"],
            "key": r["slug"],
            "parent": r["parent_task_id"],
        }
        for r in rows
    ]
    return tasks, deps


async def _gantt_data(
    session: AsyncSession, where: list, start, end, sprints: list[dict], sprint: dict | None = None
) -> dict:
    tasks, deps = await _gantt_tasks(session, where)
    if sprint is not None:
        gantt.fill_from_sprint(tasks, sprint)
    return {
        "timeline": gantt.timeline(tasks, start, end),
        "critical_path": gantt.critical_path(tasks, deps),
        "milestones": gantt.sprint_milestones(sprints),
        "tasks": gantt.build_hierarchy(tasks),
    }


@router.get("/gantt/projects/{project_id}", response_model=GanttData)
async def project_gantt(
    project_id: uuid.UUID,
    sprint_id: uuid.UUID | None = None,
    session: AsyncSession = Depends(get_session),
) -> dict:
    t, s = schema.tasks, schema.sprints
    project = await get_or_404(session, schema.projects, project_id)
    where = [t.c.project_id == project_id]
    if sprint_id:
        where.append(t.c.sprint_id == sprint_id)
    sprints = await fetch_all(session, sa.select(s).where(s.c.project_id == project_id, s.c.is_default.is_(False)))
    return await _gantt_data(session, where, project["start_date"], project["end_date"], sprints)


@router.get("/gantt/sprints/{sprint_id}", response_model=GanttData)
async def sprint_gantt(sprint_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    sprint = await get_or_404(session, schema.sprints, sprint_id)
    where = [schema.tasks.c.sprint_id == sprint_id]
    return await _gantt_data(session, where, sprint["start_date"], sprint["end_date"], [sprint], sprint=sprint)


@router.get("/gantt/projects/{project_id}/resources", response_model=list[ResourceAllocation])
async def resource_allocation(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    t, a, u = schema.tasks, schema.task_assignees, schema.users
    await get_or_404(session, schema.projects, project_id)
    rows = await fetch_all(
        session,
        sa.select(
            t.c.id.label("task_id"),
            t.c.title,
            t.c.start_date,
            t.c.due_date,
            t.c.story_points,
            u.c.id.label("user_id"),
            u.c.first_name,
            u.c.last_name,
            u.c.email,
            u.c.avatar,
        )
        .join(a, a.c.task_id == t.c.id)
        .join(u, u.c.id == a.c.user_id)
        .where(t.c.project_id == project_id, t.c.start_date.is_not(None), t.c.due_date.is_not(None))
        .order_by(u.c.email, t.c.task_number),
    )
    return gantt.resource_allocation(rows)


@router.post("/tasks/{task_id}/reschedule", response_model=TaskOut)
async def reschedule_task(
    task_id: uuid.UUID,
    req: RescheduleRequest,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t = schema.tasks
    task = await get_or_404(session, t, task_id)
    if not task["start_date"] or not task["due_date"]:
        raise InvalidRequestError("task needs a start and due date to be rescheduled")

    start, due = gantt.reschedule(
        task["start_date"],
        task["due_date"],
        mode=req.mode,
        delta_px=req.delta_px,
        view_mode=req.view_mode,
        cell_width=req.cell_width,
    )
    await session.execute(
        sa.update(t).where(t.c.id == task_id).values(start_date=start, due_date=due, **audit(user["id"], created=False))
    )
    await session.commit()
    logger.info("task_rescheduled", task_id=str(task_id), mode=req.mode, start=start.isoformat(), due=due.isoformat())
    return await load_task(session, task_id)
