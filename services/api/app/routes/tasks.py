from __future__ import annotations

import uuid
from collections import defaultdict

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import Page, audit, current_user, fetch_all, fetch_one, get_or_404, now, pagination
from services.api.app.errors import InvalidRequestError, NotFoundError
from services.api.app.logging import logger
from services.api.app.schemas import (
    StatusColumn,
    TaskAssign,
    TaskCreate,
    TaskOut,
    TaskPage,
    TaskPriority,
    TaskStatusChange,
    TaskType,
    TaskUpdate,
)


router = APIRouter(prefix="/tasks", tags=["tasks"])


async def attach_assignees(session: AsyncSession, tasks: list[dict]) -> list[dict]:
    a = schema.task_assignees
    ids = [t["id"] for t in tasks]
    by_task: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    if ids:
        rows = await session.execute(sa.select(a.c.task_id, a.c.user_id).where(a.c.task_id.in_(ids)).order_by(a.c.created_at))
        for task_id, user_id in rows.all():
            by_task[task_id].append(user_id)
    for t in tasks:
        t["assignee_ids"] = by_task.get(t["id"], [])
    return tasks


async def load_task(session: AsyncSession, task_id: uuid.UUID) -> dict:
    task = await get_or_404(session, schema.tasks, task_id)
    return (await attach_assignees(session, [task]))[0]


async def _workflow_status(session: AsyncSession, project: dict, status_id: uuid.UUID | None) -> dict:
    """The given status, checked against the project's workflow, or the workflow's default one."""
    s = schema.task_statuses
    q = sa.select(s).where(s.c.workflow_id == project["workflow_id"])
    if status_id is not None:
        status = await fetch_one(session, q.where(s.c.id == status_id))
        if status is None:
            raise InvalidRequestError("status does not belong to the project's workflow")
        return status
    status = await fetch_one(session, q.order_by(s.c.is_default.desc(), s.c.position).limit(1))
    if status is None:
        raise InvalidRequestError("project workflow has no statuses")
    return status


async def _ancestors(session: AsyncSession, task_id: uuid.UUID) -> set[uuid.UUID]:
    t = schema.tasks
    seen: set[uuid.UUID] = set()
    cur = task_id
    while cur is not None and cur not in seen:
        seen.add(cur)
        cur = (await session.execute(sa.select(t.c.parent_task_id).where(t.c.id == cur))).scalar_one_or_none()
    return seen


async def _check_refs(session: AsyncSession, project_id: uuid.UUID, sprint_id, parent_task_id, task_id=None) -> None:
    if sprint_id is not None:
        sprint = await get_or_404(session, schema.sprints, sprint_id)
        if sprint["project_id"] != project_id:
            raise InvalidRequestError("sprint belongs to another project")
    if parent_task_id is not None:
        if parent_task_id == task_id:
            raise InvalidRequestError("a task cannot be its own parent")
        parent = await get_or_404(session, schema.tasks, parent_task_id, "parent task")
        if parent["project_id"] != project_id:
            raise InvalidRequestError("parent task belongs to another project")
        if task_id is not None and task_id in await _ancestors(session, parent_task_id):
            raise InvalidRequestError("a task cannot be nested under its own subtask")


async def _replace_assignees(session: AsyncSession, task_id: uuid.UUID, user_ids: list[uuid.UUID]) -> None:
    a, u = schema.task_assignees, schema.users
    user_ids = list(dict.fromkeys(user_ids))
    if user_ids:
        found = {r[0] for r in (await session.execute(sa.select(u.c.id).where(u.c.id.in_(user_ids)))).all()}
        missing = [str(i) for i in user_ids if i not in found]
        if missing:
            raise NotFoundError(f"unknown users: {', '.join(missing)}")
    await session.execute(sa.delete(a).where(a.c.task_id == task_id))
    if user_ids:
        ts = now()
        await session.execute(sa.insert(a), [{"task_id": task_id, "user_id": uid, "created_at": ts} for uid in user_ids])


@router.get("", response_model=TaskPage)
async def list_tasks(
    project_id: uuid.UUID | None = None,
    status_id: uuid.UUID | None = None,
    sprint_id: uuid.UUID | None = None,
    assignee_id: uuid.UUID | None = None,
    priority: TaskPriority | None = None,
    type: TaskType | None = None,
    page: Page = Depends(pagination),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t, a = schema.tasks, schema.task_assignees
    where = []
    if project_id:
        where.append(t.c.project_id == project_id)
    if status_id:
        where.append(t.c.status_id == status_id)
    if sprint_id:
        where.append(t.c.sprint_id == sprint_id)
    if assignee_id:
        where.append(t.c.id.in_(sa.select(a.c.task_id).where(a.c.user_id == assignee_id)))
    if priority:
        where.append(t.c.priority == priority)
    if type:
        where.append(t.c.type == type)

    total = (await session.execute(sa.select(sa.func.count()).select_from(t).where(*where))).scalar_one()
    q = sa.select(t).where(*where).order_by(t.c.created_at.desc(), t.c.task_number.desc()).limit(page.limit).offset(page.offset)
    items = await attach_assignees(session, await fetch_all(session, q))
    return {"items": items, "total": total, "page": page.page, "limit": page.limit}


@router.get("/by-status", response_model=list[StatusColumn])
async def tasks_by_status(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    t, s = schema.tasks, schema.task_statuses
    project = await get_or_404(session, schema.projects, project_id)
    statuses = await fetch_all(
        session, sa.select(s).where(s.c.workflow_id == project["workflow_id"]).order_by(s.c.position, s.c.name)
    )
    tasks = await attach_assignees(
        session, await fetch_all(session, sa.select(t).where(t.c.project_id == project_id).order_by(t.c.task_number))
    )
    columns = {st["id"]: {"status": st, "tasks": []} for st in statuses}
    for task in tasks:
        if task["status_id"] in columns:
            columns[task["status_id"]]["tasks"].append(task)
    return list(columns.values())


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await load_task(session, task_id)


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(req: TaskCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> dict:
    t = schema.tasks
    project = await get_or_404(session, schema.projects, req.project_id)
    status = await _workflow_status(session, project, req.status_id)
    await _check_refs(session, req.project_id, req.sprint_id, req.parent_task_id)

    last = (await session.execute(sa.select(sa.func.max(t.c.task_number)).where(t.c.project_id == req.project_id))).scalar()
    number = (last or 0) + 1
    row = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"assignee_ids", "status_id"}),
        "status_id": status["id"],
        "task_number": number,
        "slug": slugify(f"{project['slug']}-{number}"),
        "remaining_estimate": req.original_estimate,
        "completed_at": now() if status["category"] == "DONE" else None,
        "reporter_id": user["id"],
        **audit(user["id"]),
    }
    await session.execute(sa.insert(t).values(**row))
    await _replace_assignees(session, row["id"], req.assignee_ids)
    await session.commit()
    logger.info("task_created", task_id=str(row["id"]), project_id=str(req.project_id), number=number)
    return await load_task(session, row["id"])


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: uuid.UUID,
    req: TaskUpdate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t = schema.tasks
    task = await get_or_404(session, t, task_id)
    changes = req.model_dump(exclude_unset=True)
    await _check_refs(session, task["project_id"], changes.get("sprint_id"), changes.get("parent_task_id"), task_id)
    start = changes.get("start_date", task["start_date"])
    due = changes.get("due_date", task["due_date"])
    if start and due and due < start:
        raise InvalidRequestError("task must not end before it starts")
    if changes:
        await session.execute(sa.update(t).where(t.c.id == task_id).values(**changes, **audit(user["id"], created=False)))
        await session.commit()
    return await load_task(session, task_id)


@router.put("/{task_id}/status", response_model=TaskOut)
async def change_status(
    task_id: uuid.UUID,
    req: TaskStatusChange,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t = schema.tasks
    task = await get_or_404(session, t, task_id)
    project = await get_or_404(session, schema.projects, task["project_id"])
    status = await _workflow_status(session, project, req.status_id)

    values = {"status_id": status["id"]}
    if status["category"] == "DONE":
        values["completed_at"] = task["completed_at"] or now()
        values["remaining_estimate"] = 0
    else:
        values["completed_at"] = None
    await session.execute(sa.update(t).where(t.c.id == task_id).values(**values, **audit(user["id"], created=False)))
    await session.commit()
    logger.info("task_status_changed", task_id=str(task_id), status=status["name"])
    return await load_task(session, task_id)


@router.put("/{task_id}/assignees", response_model=TaskOut)
async def assign_task(
    task_id: uuid.UUID,
    req: TaskAssign,
    _: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await get_or_404(session, schema.tasks, task_id)
    await _replace_assignees(session, task_id, req.user_ids)
    await session.commit()
    return await load_task(session, task_id)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: uuid.UUID, _: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> None:
    await get_or_404(session, schema.tasks, task_id)
    await session.execute(sa.delete(schema.tasks).where(schema.tasks.c.id == task_id))
    await session.commit()
