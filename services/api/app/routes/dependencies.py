from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, InvalidRequestError
from services.api.app.logging import logger
from services.api.app.routes.tasks import attach_assignees
from services.api.app.schemas import DependencyCreate, DependencyOut, DependencyStats, TaskDependencies, TaskOut
from services.api.app.task_graph import longest_chain, would_create_cycle


router = APIRouter(tags=["dependencies"])


def _project_dependencies(project_id: uuid.UUID) -> sa.Select:
    td, t = schema.task_dependencies, schema.tasks
    return (
        sa.select(td)
        .join(t, t.c.id == td.c.dependent_task_id)
        .where(t.c.project_id == project_id)
        .order_by(td.c.created_at)
    )


def _blocked_condition() -> sa.ColumnElement:
    """Tasks waiting on at least one blocking task that is not done yet."""
    td, bt, st = schema.task_dependencies, schema.tasks.alias("blocking"), schema.task_statuses
    open_blockers = (
        sa.select(td.c.dependent_task_id)
        .join(bt, bt.c.id == td.c.blocking_task_id)
        .join(st, st.c.id == bt.c.status_id)
        .where(st.c.category != "DONE")
    )
    return schema.tasks.c.id.in_(open_blockers)


@router.post("/dependencies", response_model=DependencyOut, status_code=201)
async def create_dependency(
    req: DependencyCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    td = schema.task_dependencies
    if req.dependent_task_id == req.blocking_task_id:
        raise InvalidRequestError("a task cannot depend on itself")
    await get_or_404(session, schema.tasks, req.dependent_task_id, "dependent task")
    await get_or_404(session, schema.tasks, req.blocking_task_id, "blocking task")

    existing = await fetch_one(
        session,
        sa.select(td.c.id).where(td.c.dependent_task_id == req.dependent_task_id, td.c.blocking_task_id == req.blocking_task_id),
    )
    if existing:
        raise ConflictError("dependency already exists")
    edges = (await session.execute(sa.select(td.c.dependent_task_id, td.c.blocking_task_id))).all()
    if would_create_cycle(edges, req.dependent_task_id, req.blocking_task_id):
        raise InvalidRequestError("dependency would create a cycle")

    row = {"id": uuid.uuid4(), **req.model_dump(), **audit(user["id"])}
    await session.execute(sa.insert(td).values(**row))
    await session.commit()
    logger.info("dependency_created", dependent=str(req.dependent_task_id), blocking=str(req.blocking_task_id))
    return row


@router.get("/tasks/{task_id}/dependencies", response_model=TaskDependencies)
async def task_dependencies(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    td = schema.task_dependencies
    await get_or_404(session, schema.tasks, task_id)
    return {
        "depends_on": await fetch_all(session, sa.select(td).where(td.c.dependent_task_id == task_id).order_by(td.c.created_at)),
        "blocks": await fetch_all(session, sa.select(td).where(td.c.blocking_task_id == task_id).order_by(td.c.created_at)),
    }


@router.get("/dependencies/blocked", response_model=list[TaskOut])
async def blocked_tasks(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    t = schema.tasks
    q = sa.select(t).where(t.c.project_id == project_id, _blocked_condition()).order_by(t.c.task_number)
    return await attach_assignees(session, await fetch_all(session, q))


@router.get("/dependencies/stats", response_model=DependencyStats)
async def dependency_stats(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    t = schema.tasks
    await get_or_404(session, schema.projects, project_id)
    deps = await fetch_all(session, _project_dependencies(project_id))
    blocked = (
        await session.execute(sa.select(sa.func.count()).select_from(t).where(t.c.project_id == project_id, _blocked_condition()))
    ).scalar_one()
    task_ids = [r[0] for r in (await session.execute(sa.select(t.c.id).where(t.c.project_id == project_id).order_by(t.c.task_number))).all()]
    return {
        "total_dependencies": len(deps),
        "blocked_tasks": blocked,
        "critical_path": longest_chain(task_ids, [(d["dependent_task_id"], d["blocking_task_id"]) for d in deps]),
    }


@router.delete("/dependencies/{dependency_id}", status_code=204)
async def delete_dependency(
    dependency_id: uuid.UUID, _: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> None:
    td = schema.task_dependencies
    await get_or_404(session, td, dependency_id, "dependency")
    await session.execute(sa.delete(td).where(td.c.id == dependency_id))
    await session.commit()
